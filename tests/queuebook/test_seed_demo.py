from datetime import date

from queuebook.seed_demo import DEMO_SERVICES, seed


def test_seed_creates_demo_hospital_with_services(booking) -> None:
    lines = seed(booking)

    assert len(lines) == 1 + len(DEMO_SERVICES)
    assert lines[0].endswith('City Medical Center')

    provider_id = lines[0].split()[1]
    services = booking.list_services(provider_id)
    assert sorted(service.name for service in services) == [
        'General Consultation',
        'Lab Tests',
        'Specialist Consultation',
    ]


def test_seeded_lunch_break_is_not_bookable(booking) -> None:
    provider_id = seed(booking)[0].split()[1]
    general = next(service for service in booking.list_services(provider_id) if service.name == 'General Consultation')

    slots = booking.get_available_slots(general.id, date(2026, 1, 6))

    assert slots[0] == '08:00'
    assert '11:30' in slots
    assert '12:00' not in slots
    assert '12:30' not in slots
    assert '13:00' in slots
