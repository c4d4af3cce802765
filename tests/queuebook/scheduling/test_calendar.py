from datetime import date, time

import pytest

from queuebook.core.errors import InvalidConfiguration
from queuebook.scheduling.calendar import (
    dump_working_hours,
    get_breaks,
    get_window,
    is_holiday,
    is_open,
    parse_hhmm,
    parse_working_hours,
)

MONDAY = date(2026, 1, 5)
SATURDAY = date(2026, 1, 10)
SUNDAY = date(2026, 1, 11)

WORKING_HOURS = {
    'Monday': {'open': '08:00', 'close': '17:00', 'isOpen': True, 'breaks': [{'start': '12:00', 'end': '13:00'}]},
    'Saturday': {'open': '09:00', 'close': '13:00', 'is_open': True},
    'Sunday': {'open': '09:00', 'close': '13:00', 'isOpen': False},
}


def test_parse_hhmm_accepts_zero_padded_times() -> None:
    assert parse_hhmm('09:30') == time(9, 30)
    assert parse_hhmm(' 23:59 ') == time(23, 59)


@pytest.mark.parametrize('value', ['9:30', '24:00', '09:60', '0930', '', None, 930])
def test_parse_hhmm_rejects_malformed_times(value) -> None:
    with pytest.raises(InvalidConfiguration):
        parse_hhmm(value)


def test_open_day_returns_window() -> None:
    assert is_open(MONDAY, WORKING_HOURS) is True
    assert get_window(MONDAY, WORKING_HOURS) == (time(8, 0), time(17, 0))


def test_day_flagged_closed_has_no_window() -> None:
    assert is_open(SUNDAY, WORKING_HOURS) is False
    assert get_window(SUNDAY, WORKING_HOURS) is None


def test_weekday_missing_from_hours_is_closed() -> None:
    tuesday = date(2026, 1, 6)

    assert is_open(tuesday, WORKING_HOURS) is False
    assert get_window(tuesday, WORKING_HOURS) is None


def test_get_breaks_returns_intervals_for_open_day_only() -> None:
    breaks = get_breaks(MONDAY, WORKING_HOURS)

    assert [(interval.start, interval.end) for interval in breaks] == [(time(12, 0), time(13, 0))]
    assert get_breaks(SATURDAY, WORKING_HOURS) == []
    assert get_breaks(SUNDAY, WORKING_HOURS) == []


@pytest.mark.parametrize(
    'raw',
    [
        {'Monday': {'open': '8am', 'close': '17:00', 'is_open': True}},
        {'Monday': {'open': '17:00', 'close': '08:00', 'is_open': True}},
        {'Monday': {'open': '09:00', 'is_open': True}},
        {'Monday': {'open': '09:00', 'close': '17:00', 'breaks': [{'start': '08:00', 'end': '09:30'}]}},
        {'Monday': {'open': '09:00', 'close': '17:00', 'breaks': [{'start': '13:00', 'end': '12:00'}]}},
        {'Funday': {'open': '09:00', 'close': '17:00'}},
    ],
)
def test_parse_working_hours_rejects_malformed_configuration(raw) -> None:
    with pytest.raises(InvalidConfiguration):
        parse_working_hours(raw)


def test_lookup_on_malformed_hours_raises_invalid_configuration() -> None:
    with pytest.raises(InvalidConfiguration):
        is_open(MONDAY, {'Monday': {'open': '25:00', 'close': '26:00'}})


def test_dump_working_hours_round_trips_to_hhmm_strings() -> None:
    dumped = dump_working_hours(parse_working_hours(WORKING_HOURS))

    assert dumped['Monday'] == {
        'open': '08:00',
        'close': '17:00',
        'is_open': True,
        'breaks': [{'start': '12:00', 'end': '13:00'}],
    }
    assert dumped['Sunday']['is_open'] is False
    assert parse_working_hours(dumped) == parse_working_hours(WORKING_HOURS)


def test_is_holiday_accepts_iso_strings_and_dates() -> None:
    assert is_holiday(date(2026, 12, 25), ['2026-12-25', date(2027, 1, 1)]) is True
    assert is_holiday(date(2027, 1, 1), ['2026-12-25', date(2027, 1, 1)]) is True
    assert is_holiday(MONDAY, ['2026-12-25']) is False


def test_is_holiday_rejects_malformed_dates() -> None:
    with pytest.raises(InvalidConfiguration):
        is_holiday(MONDAY, ['25/12/2026'])
