"""Business-timezone clock.

Every "now" read in the engine goes through ``get_clock()``. Production uses
the system clock; tests install a clock with a pinned instant via
``set_clock()``.

Two kinds of arithmetic are offered and they are not interchangeable:

* ``add_hours`` / ``add_days`` move by real elapsed time. Twelve hours after
  01:00 on a spring-forward day is 14:00 local, not 13:00.
* ``days_ago`` and ``add_calendar_days`` move the local wall clock by whole
  calendar days, so "30 days before 2024-03-01 noon" is 2024-01-31 noon
  regardless of DST.
"""

import re
from collections.abc import Callable
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from visitgate.config import settings
from visitgate.errors import InvalidDate

_CALENDAR_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _system_now() -> datetime:
    return datetime.now(timezone.utc)


class BusinessClock:
    """Clock bound to the fixed business timezone."""

    def __init__(
        self,
        tz_name: str | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.tz = ZoneInfo(tz_name or settings.business_timezone)
        self._now = now or _system_now

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def now_in_zone(self) -> datetime:
        """Current instant expressed in the business timezone."""
        return self._now().astimezone(self.tz)

    def today(self) -> date:
        """Current calendar date in the business timezone."""
        return self.now_in_zone().date()

    def is_after_cutoff(self, hour: int | None = None) -> bool:
        """True when the local hour is at or past ``hour`` (default from settings)."""
        if hour is None:
            hour = settings.check_in_cutoff_hour
        return self.now_in_zone().hour >= hour

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def localize(self, wall: datetime) -> datetime:
        """Attach the business zone to a naive local wall-clock time."""
        aware = wall.replace(tzinfo=self.tz)
        # Round-trip through UTC so times inside a DST gap resolve to a real instant.
        return aware.astimezone(timezone.utc).astimezone(self.tz)

    def add_calendar_days(self, instant: datetime, n: int) -> datetime:
        """``instant`` with its local wall clock moved by ``n`` calendar days."""
        local = instant.astimezone(self.tz)
        return self.localize(local.replace(tzinfo=None) + timedelta(days=n))

    def days_ago(self, n: int) -> datetime:
        """Local wall clock moved back ``n`` calendar days."""
        return self.add_calendar_days(self.now_in_zone(), -n)

    def thirty_days_ago(self) -> datetime:
        return self.days_ago(30)

    def add_hours(self, instant: datetime, hours: float) -> datetime:
        """``instant`` plus ``hours`` of real elapsed time."""
        return (instant.astimezone(timezone.utc) + timedelta(hours=hours)).astimezone(self.tz)

    def add_days(self, instant: datetime, days: float) -> datetime:
        """``instant`` plus ``days`` × 24 hours of real elapsed time."""
        return self.add_hours(instant, days * 24)

    # ------------------------------------------------------------------
    # Domain windows
    # ------------------------------------------------------------------

    def qr_token_expiration(self) -> datetime:
        return self.add_days(self.now_in_zone(), settings.qr_token_expire_days)

    def calculate_visit_expiration(self, check_in: datetime) -> datetime:
        return self.add_hours(check_in, settings.visit_duration_hours)

    def calculate_next_eligible_date(self, instant: datetime) -> datetime:
        """When a visit at ``instant`` stops counting toward the rolling limit.

        Uses the same calendar-day arithmetic as the window start, so the two
        agree across a DST change.
        """
        return self.add_calendar_days(instant, settings.guest_rolling_window_days)

    def invite_deadline(self, invite_date: date) -> datetime:
        """Start of the local day after ``invite_date``."""
        return self.localize(datetime.combine(invite_date + timedelta(days=1), time.min))

    # ------------------------------------------------------------------
    # Parsing and display
    # ------------------------------------------------------------------

    @staticmethod
    def parse_calendar_date(text: str | None) -> date:
        """Parse a strict ``YYYY-MM-DD`` string as a local calendar date.

        Raises:
            InvalidDate: On malformed text or an impossible month/day.
        """
        if not text or not _CALENDAR_DATE_RE.match(text):
            raise InvalidDate()
        try:
            return date.fromisoformat(text)
        except ValueError:
            raise InvalidDate() from None

    def format_date_for_display(self, instant: datetime) -> str:
        """E.g. ``Jan 9, 2025``."""
        local = instant.astimezone(self.tz)
        return f"{local:%b} {local.day}, {local.year}"

    def format_time_for_display(self, instant: datetime) -> str:
        """E.g. ``2:30 PM``."""
        local = instant.astimezone(self.tz)
        hour = local.hour % 12 or 12
        suffix = "AM" if local.hour < 12 else "PM"
        return f"{hour}:{local.minute:02d} {suffix}"


_clock: BusinessClock | None = None


def get_clock() -> BusinessClock:
    """Return the process-wide clock, creating the system clock on first use."""
    global _clock
    if _clock is None:
        _clock = BusinessClock()
    return _clock


def set_clock(clock: BusinessClock | None) -> None:
    """Install ``clock`` process-wide. ``None`` restores the system clock."""
    global _clock
    _clock = clock
