from dataclasses import dataclass
from datetime import date, time

SLOT_LENGTH_MINUTES = 30
SLOT_START_TIMES = (
    time(17, 0),
    time(17, 30),
    time(18, 0),
    time(18, 30),
    time(19, 0),
    time(19, 30),
)
CLOSED_WEEKDAYS = frozenset({6})  # date.weekday(): Monday=0 ... Sunday=6


@dataclass(frozen=True)
class TimeSlot:
    time: str
    label: str


def format_clock(value: time) -> str:
    hour = value.hour % 12 or 12
    suffix = 'AM' if value.hour < 12 else 'PM'
    return f'{hour}:{value.minute:02d} {suffix}'


def _slot_end(start: time) -> time:
    total_minutes = start.hour * 60 + start.minute + SLOT_LENGTH_MINUTES
    return time(total_minutes // 60 % 24, total_minutes % 60)


def _build_slot(start: time) -> TimeSlot:
    return TimeSlot(
        time=start.strftime('%H:%M'),
        label=f'{format_clock(start)} - {format_clock(_slot_end(start))}',
    )


WEEKDAY_SLOTS = tuple(_build_slot(start) for start in SLOT_START_TIMES)


def slots_for_date(slot_date: date) -> list[TimeSlot]:
    """Bookable slots for ``slot_date``.

    Existing bookings are not subtracted, so two clients can hold the same
    slot on the same day.
    """
    if slot_date.weekday() in CLOSED_WEEKDAYS:
        return []
    return list(WEEKDAY_SLOTS)
