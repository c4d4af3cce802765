"""Slot generation for a service on a single day."""
from collections.abc import Iterable, Iterator, Mapping
from datetime import date, time

from queuebook.core.errors import InvalidConfiguration
from queuebook.models.appointment import Appointment, AppointmentStatus
from queuebook.scheduling.calendar import get_breaks, get_window, parse_hhmm

DEFAULT_SLOT_GRANULARITY_MINUTES = 30
EXCLUSION_MODE_EXACT = 'exact'
EXCLUSION_MODE_INTERVAL = 'interval'


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def format_minutes(total_minutes: int) -> str:
    return f'{total_minutes // 60:02d}:{total_minutes % 60:02d}'


def is_active(appointment: Appointment) -> bool:
    return appointment.status != AppointmentStatus.CANCELLED.value


class SlotSequence:
    """Ascending ``HH:MM`` start times for one service-day.

    The sequence is computed lazily and can be iterated any number of times;
    each pass starts again from the opening time.
    """

    def __init__(
        self,
        window: tuple[int, int] | None,
        breaks: list[tuple[int, int]],
        busy: list[tuple[int, int]],
        duration_minutes: int,
        granularity_minutes: int,
        exclusion_mode: str,
    ):
        self.window = window
        self.breaks = breaks
        self.busy = busy
        self.duration_minutes = duration_minutes
        self.granularity_minutes = granularity_minutes
        self.exclusion_mode = exclusion_mode

    def __iter__(self) -> Iterator[str]:
        if self.window is None:
            return

        open_minutes, close_minutes = self.window
        current = open_minutes
        while current < close_minutes:
            if not self._in_break(current) and not self._is_taken(current):
                yield format_minutes(current)
            current += self.granularity_minutes

    def __contains__(self, value: object) -> bool:
        return any(slot == value for slot in self)

    def __repr__(self) -> str:
        return f'SlotSequence({list(self)!r})'

    def _in_break(self, start: int) -> bool:
        return any(break_start <= start < break_end for break_start, break_end in self.breaks)

    def _is_taken(self, start: int) -> bool:
        if self.exclusion_mode == EXCLUSION_MODE_EXACT:
            return any(busy_start == start for busy_start, _ in self.busy)

        # breaks block the whole interval, not just start times
        end = start + self.duration_minutes
        return any(
            busy_start == start or overlaps((start, end), (busy_start, busy_end))
            for busy_start, busy_end in [*self.busy, *self.breaks]
        )


def overlaps(first: tuple[int, int], second: tuple[int, int]) -> bool:
    return first[0] < second[1] and second[0] < first[1]


def appointment_interval(appointment: Appointment) -> tuple[int, int]:
    """Minutes-after-midnight ``[start, end)`` of an appointment."""
    start = to_minutes(parse_hhmm(appointment.start_time))
    return start, start + (appointment.duration_minutes or 0)


def generate_slots(
    service,
    day: date,
    existing_appointments: Iterable[Appointment],
    working_hours: Mapping,
    slot_granularity_minutes: int = DEFAULT_SLOT_GRANULARITY_MINUTES,
    exclusion_mode: str = EXCLUSION_MODE_INTERVAL,
) -> SlotSequence:
    if slot_granularity_minutes <= 0:
        raise InvalidConfiguration('Slot granularity must be a positive number of minutes.')
    if exclusion_mode not in (EXCLUSION_MODE_EXACT, EXCLUSION_MODE_INTERVAL):
        raise InvalidConfiguration(f"Unknown slot exclusion mode '{exclusion_mode}'.")
    if not service.duration_minutes or service.duration_minutes <= 0:
        raise InvalidConfiguration(f"Service '{service.name}' must have a positive duration.")

    window = get_window(day, working_hours)
    if window is None:
        return SlotSequence(None, [], [], service.duration_minutes, slot_granularity_minutes, exclusion_mode)

    breaks = [(to_minutes(interval.start), to_minutes(interval.end)) for interval in get_breaks(day, working_hours)]

    busy: list[tuple[int, int]] = []
    for appointment in existing_appointments:
        if not is_active(appointment):
            continue
        if appointment.appointment_date != day or appointment.provider_id != service.provider_id:
            continue
        busy.append(appointment_interval(appointment))

    return SlotSequence(
        (to_minutes(window[0]), to_minutes(window[1])),
        breaks,
        busy,
        service.duration_minutes,
        slot_granularity_minutes,
        exclusion_mode,
    )
