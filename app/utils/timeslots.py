import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List, Union

from app.core.exceptions import InvalidTimeFormat

SLOT_MINUTES = 60

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")


@dataclass(frozen=True)
class Slot:
    """A bookable 60-minute interval within a facility's operating hours."""
    start_time: time
    end_time: time

    @property
    def label(self) -> str:
        return f"{format_hhmm(self.start_time)}-{format_hhmm(self.end_time)}"


def parse_hhmm(value: Union[str, time]) -> time:
    """Parse an "HH:MM" string (24h clock). Raises InvalidTimeFormat on anything else."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not isinstance(value, str):
        raise InvalidTimeFormat(f"Expected an HH:MM time string, got {value!r}")

    match = _HHMM.match(value.strip())
    if not match:
        raise InvalidTimeFormat(f"Invalid time '{value}': expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidTimeFormat(f"Invalid time '{value}': out of range")
    return time(hours, minutes)


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def _to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def minutes_between(start: time, end: time) -> int:
    return _to_minutes(end) - _to_minutes(start)


def generate_slots(open_time: Union[str, time], close_time: Union[str, time]) -> List[Slot]:
    """
    Partition the operating window [open, close) into 60-minute slots.

    Walks from open to close in one-hour steps. A step is emitted only if the
    whole hour fits before close, so a trailing remainder shorter than an hour
    is dropped. A window that closes at or before it opens has no slots.
    """
    start = _to_minutes(parse_hhmm(open_time))
    close = _to_minutes(parse_hhmm(close_time))

    slots = []
    while start + SLOT_MINUTES <= close:
        end = start + SLOT_MINUTES
        slots.append(Slot(time(start // 60, start % 60), time(end // 60, end % 60)))
        start = end
    return slots


def slot_start_datetime(slot_date: date, start_time: time) -> datetime:
    """Naive local datetime at which a slot begins."""
    return datetime.combine(slot_date, start_time)


def reminder_time_for(slot_date: date, start_time: time, lead_minutes: int) -> datetime:
    return slot_start_datetime(slot_date, start_time) - timedelta(minutes=lead_minutes)
