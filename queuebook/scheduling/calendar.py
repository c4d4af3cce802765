"""Working-hours calendar.

Resolves whether a provider is open on a given date and what its operating
window is. Working hours are stored as a mapping of weekday name to
``{open, close, is_open, breaks}`` with ``HH:MM`` strings; this module
validates that mapping and answers lookups against it.
"""
import re
from collections.abc import Iterable, Mapping
from datetime import date, time

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator, model_validator

from queuebook.core.errors import InvalidConfiguration


WEEKDAYS = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')

_HHMM_PATTERN = re.compile(r'^([01]\d|2[0-3]):([0-5]\d)$')


def parse_hhmm(value: str) -> time:
    """Parse a strict ``HH:MM`` string."""
    if not isinstance(value, str):
        raise InvalidConfiguration(f"Expected an HH:MM time string, got {value!r}.")
    match = _HHMM_PATTERN.match(value.strip())
    if not match:
        raise InvalidConfiguration(f"Malformed time '{value}', expected HH:MM.")
    return time(int(match.group(1)), int(match.group(2)))


def format_hhmm(value: time) -> str:
    return value.strftime('%H:%M')


def _coerce_time(value):
    if value is None or isinstance(value, time):
        return value
    try:
        return parse_hhmm(value)
    except InvalidConfiguration as exc:
        raise ValueError(exc.message) from exc


class BreakInterval(BaseModel):
    start: time
    end: time

    @field_validator('start', 'end', mode='before')
    @classmethod
    def parse_times(cls, value):
        return _coerce_time(value)

    @model_validator(mode='after')
    def check_order(self) -> 'BreakInterval':
        if self.end <= self.start:
            raise ValueError('Break must end after it starts.')
        return self


class DayHours(BaseModel):
    open: time | None = None
    close: time | None = None
    is_open: bool = Field(default=True, validation_alias=AliasChoices('is_open', 'isOpen'))
    breaks: list[BreakInterval] = Field(default_factory=list)

    @field_validator('open', 'close', mode='before')
    @classmethod
    def parse_times(cls, value):
        return _coerce_time(value)

    @model_validator(mode='after')
    def check_window(self) -> 'DayHours':
        if not self.is_open:
            return self
        if self.open is None or self.close is None:
            raise ValueError('Open days need both open and close times.')
        if self.close <= self.open:
            raise ValueError('Close time must be after open time.')
        for interval in self.breaks:
            if interval.start < self.open or interval.end > self.close:
                raise ValueError('Breaks must fall inside the opening window.')
        return self


WorkingHours = dict[str, DayHours]


def parse_working_hours(raw: Mapping) -> WorkingHours:
    if not isinstance(raw, Mapping):
        raise InvalidConfiguration('Working hours must be a mapping of weekday name to hours.')

    parsed: WorkingHours = {}
    for weekday, hours in raw.items():
        if weekday not in WEEKDAYS:
            raise InvalidConfiguration(f"Unknown weekday '{weekday}' in working hours.")
        if isinstance(hours, DayHours):
            parsed[weekday] = hours
            continue
        try:
            parsed[weekday] = DayHours.model_validate(hours)
        except ValidationError as exc:
            message = '; '.join(error['msg'] for error in exc.errors())
            raise InvalidConfiguration(f"Invalid working hours for {weekday}: {message}") from exc
    return parsed


def dump_working_hours(working_hours: WorkingHours) -> dict:
    """Serialize parsed working hours back to the stored ``HH:MM`` form."""
    def _fmt(value: time | None) -> str | None:
        return format_hhmm(value) if value is not None else None

    return {
        weekday: {
            'open': _fmt(hours.open),
            'close': _fmt(hours.close),
            'is_open': hours.is_open,
            'breaks': [{'start': _fmt(b.start), 'end': _fmt(b.end)} for b in hours.breaks],
        }
        for weekday, hours in working_hours.items()
    }


def _day_hours(day: date, working_hours: Mapping) -> DayHours | None:
    hours = parse_working_hours(working_hours).get(WEEKDAYS[day.weekday()])
    if hours is None or not hours.is_open:
        return None
    return hours


def is_open(day: date, working_hours: Mapping) -> bool:
    return _day_hours(day, working_hours) is not None


def get_window(day: date, working_hours: Mapping) -> tuple[time, time] | None:
    hours = _day_hours(day, working_hours)
    if hours is None:
        return None
    return hours.open, hours.close


def get_breaks(day: date, working_hours: Mapping) -> list[BreakInterval]:
    hours = _day_hours(day, working_hours)
    if hours is None:
        return []
    return list(hours.breaks)


def parse_holidays(holidays: Iterable[str | date]) -> set[date]:
    parsed: set[date] = set()
    for value in holidays:
        if isinstance(value, date):
            parsed.add(value)
            continue
        try:
            parsed.add(date.fromisoformat(value))
        except (TypeError, ValueError) as exc:
            raise InvalidConfiguration(f"Malformed holiday date {value!r}, expected YYYY-MM-DD.") from exc
    return parsed


def is_holiday(day: date, holidays: Iterable[str | date]) -> bool:
    return day in parse_holidays(holidays)
