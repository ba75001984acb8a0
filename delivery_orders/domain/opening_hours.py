from datetime import datetime
from typing import Any, Mapping

from delivery_orders.domain.schemas import DaySchedule

STORE_OPEN = "aberta"
STORE_CLOSED = "fechada"

# Index matches datetime.weekday()
WEEKDAY_KEYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def weekday_key(moment: datetime) -> str:
    return WEEKDAY_KEYS[moment.weekday()]


def minutes_since_midnight(hhmm: str) -> int:
    """Parse "HH:MM" into minutes since midnight. Raises ValueError if malformed."""
    hours, minutes = hhmm.strip().split(":")
    return int(hours) * 60 + int(minutes)


def is_open(hours: Mapping[str, Any] | None, moment: datetime) -> bool:
    """Return whether the store is open at `moment` (already in the shop's timezone).

    The day's window is half-open: open <= now < close. A schedule where close
    comes before open (past midnight) is never open.
    """
    if not hours:
        return False

    raw = hours.get(weekday_key(moment))
    if not raw:
        return False

    day = DaySchedule.model_validate(raw)
    if day.isClosed or not day.open or not day.close:
        return False

    now = moment.hour * 60 + moment.minute
    return minutes_since_midnight(day.open) <= now < minutes_since_midnight(day.close)


def store_status(hours: Mapping[str, Any] | None, moment: datetime) -> str:
    return STORE_OPEN if is_open(hours, moment) else STORE_CLOSED
