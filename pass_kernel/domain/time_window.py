"""
TimeWindow -- calendar boundaries in the business timezone.

Responsibility:
    Pure functions answering "which calendar month is this instant in" and
    "which calendar day is this instant on" for a given timezone.  The
    allowance counters (free passes this month, party days this month,
    is today a party day) are all defined in terms of these windows.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Month windows are half-open: ``[1st 00:00:00, 1st of next month 00:00:00)``
      in local time, returned as UTC instants for storage queries.
    - Every function rejects naive datetimes.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone, tzinfo


@dataclass(frozen=True)
class MonthWindow:
    """
    One calendar month in a business timezone.

    ``start`` and ``end`` are UTC instants; ``first_day`` and
    ``next_first_day`` are the local calendar dates bounding the month.
    """

    start: datetime
    end: datetime
    first_day: date
    next_first_day: date

    def contains(self, instant: datetime) -> bool:
        """True iff start <= instant < end."""
        _require_aware(instant)
        return self.start <= instant < self.end

    def contains_date(self, day: date) -> bool:
        """True iff the local calendar date falls inside this month."""
        return self.first_day <= day < self.next_first_day


def _require_aware(instant: datetime) -> None:
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise ValueError(f"Timezone-aware datetime required, got naive {instant!r}")


def local_date(instant: datetime, tz: tzinfo) -> date:
    """Calendar date of ``instant`` as seen in ``tz``."""
    _require_aware(instant)
    return instant.astimezone(tz).date()


def is_same_local_day(instant: datetime, day: date, tz: tzinfo) -> bool:
    """True iff ``instant`` falls on calendar ``day`` in ``tz``."""
    return local_date(instant, tz) == day


def _local_midnight_utc(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)


def month_window(instant: datetime, tz: tzinfo) -> MonthWindow:
    """
    Current calendar month for ``instant`` in ``tz``.

    Postconditions:
        - ``result.contains(instant)`` is True.
        - ``result.end`` equals the ``start`` of the following month.
    """
    today = local_date(instant, tz)
    first_day = today.replace(day=1)
    if first_day.month == 12:
        next_first_day = first_day.replace(year=first_day.year + 1, month=1)
    else:
        next_first_day = first_day.replace(month=first_day.month + 1)

    return MonthWindow(
        start=_local_midnight_utc(first_day, tz),
        end=_local_midnight_utc(next_first_day, tz),
        first_day=first_day,
        next_first_day=next_first_day,
    )
