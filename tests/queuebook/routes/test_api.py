from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from queuebook.core.dependencies import get_booking_service
from queuebook.main import app
from queuebook.repositories.appointment_repository import AppointmentRepository
from queuebook.services.booking_service import BookingService

NOW = datetime(2026, 1, 5, 8, 0)


@pytest.fixture
def client(db_session, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr('queuebook.core.dependencies.ensure_appointment_schema', lambda: None)
    app.dependency_overrides[get_booking_service] = lambda: BookingService(
        AppointmentRepository(db_session),
        slot_granularity_minutes=30,
        exclusion_mode='interval',
        queue_buffer_minutes=0,
        clock=lambda: NOW,
    )
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_root_reports_status(client) -> None:
    response = client.get('/')

    assert response.status_code == 200
    assert response.json() == {'status': 'Booking API Running'}


def test_full_booking_flow_over_http(client) -> None:
    provider = client.post(
        '/providers',
        json={
            'name': 'City Medical Center',
            'provider_type': 'hospital',
            'working_hours': {'Monday': {'open': '09:00', 'close': '10:00', 'isOpen': True}},
            'holidays': ['2026-12-25'],
        },
    )
    assert provider.status_code == 201
    provider_id = provider.json()['id']
    assert provider.json()['holidays'] == ['2026-12-25']

    service = client.post(
        f'/providers/{provider_id}/services',
        json={'name': 'General Consultation', 'duration_minutes': 30},
    )
    assert service.status_code == 201
    service_id = service.json()['id']

    services = client.get(f'/providers/{provider_id}/services')
    assert [item['name'] for item in services.json()] == ['General Consultation']

    slots = client.get('/availability/slots', params={'service_id': service_id, 'date': '2026-01-05'})
    assert slots.json()['slots'] == ['09:00', '09:30']

    booked = client.post(
        '/appointments',
        json={
            'service_id': service_id,
            'date': '2026-01-05',
            'time': '09:00',
            'guest': {'name': 'Ana', 'phone': '+1 555 0100'},
        },
    )
    assert booked.status_code == 201
    appointment_id = booked.json()['id']
    assert booked.json()['queue_position'] == 1

    again = client.post(
        '/appointments',
        json={'service_id': service_id, 'date': '2026-01-05', 'time': '09:00', 'user_id': 'user-b'},
    )
    assert again.status_code == 409

    queue = client.get(f'/queue/{provider_id}/{service_id}', params={'date': '2026-01-05'})
    assert [entry['appointment_id'] for entry in queue.json()] == [appointment_id]
    assert queue.json()[0]['queue_status'] == 'waiting'

    cancelled = client.post(f'/appointments/{appointment_id}/cancel', json={'reason': 'Travel'})
    assert cancelled.status_code == 200
    assert cancelled.json()['status'] == 'cancelled'

    reopened = client.get('/availability/slots', params={'service_id': service_id, 'date': '2026-01-05'})
    assert reopened.json()['slots'] == ['09:00', '09:30']


def test_malformed_working_hours_are_rejected(client) -> None:
    response = client.post(
        '/providers',
        json={'name': 'Broken', 'working_hours': {'Monday': {'open': '17:00', 'close': '09:00'}}},
    )

    assert response.status_code == 422


def test_unknown_service_returns_not_found(client) -> None:
    response = client.get('/availability/slots', params={'service_id': 'missing', 'date': '2026-01-05'})

    assert response.status_code == 404
