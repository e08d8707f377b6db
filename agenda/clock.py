"""
Zoned Clock: org-local day boundaries and instant parsing.

Every day boundary and day key in the agenda is computed in one fixed IANA
zone (config.AGENDA_TIMEZONE). Instants are timezone-aware datetimes in UTC;
stored/serialized instants are ISO 8601 UTC with a Z suffix.

A calendar day is never assumed to be 24 hours long: DST transition days in
America/New_York are 23 or 25 hours, so "N days later" is computed on the
local calendar and converted back to UTC.
"""

import logging
import re
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from agenda import config

logger = logging.getLogger(__name__)

# YYYY-MM-DD, the shape of every day key and pure calendar day
DAY_KEY_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


# =============================================================================
# INSTANT PARSING
# =============================================================================


def parse_instant(value) -> datetime | None:
    """
    Parse an instant into an aware UTC datetime.

    Accepts aware/naive datetimes (naive = UTC), ISO 8601 strings with a Z
    suffix or an explicit offset, and bare dates (midnight UTC).

    Returns:
        datetime in UTC, or None when the value is empty or unparseable
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    elif isinstance(value, str):
        ts = value.strip()
        if ts.endswith("Z"):
            ts = ts[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(ts)
        except ValueError:
            logger.debug(f"Unparseable instant: {value!r}")
            return None
    else:
        logger.debug(f"Unsupported instant type: {type(value).__name__}")
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_day(value) -> date | None:
    """
    Parse a pure calendar day ("2025-06-05").

    Only the first 10 characters are considered, so a day marker such as
    "2025-06-05T00:00:00Z" yields the same day without any zone shifting.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    head = value.strip()[:10]
    if not DAY_KEY_REGEX.match(head):
        return None
    try:
        return date.fromisoformat(head)
    except ValueError:
        logger.debug(f"Unparseable day: {value!r}")
        return None


def to_iso(dt: datetime) -> str:
    """Convert datetime to ISO string with milliseconds (naive = UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    dt_utc = dt.astimezone(UTC)
    return dt_utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt_utc.microsecond // 1000:03d}Z"


def epoch_ms(dt: datetime | None) -> float:
    """Milliseconds since epoch; a missing instant sorts as epoch 0."""
    if dt is None:
        return 0.0
    return (dt - EPOCH) / timedelta(milliseconds=1)


# =============================================================================
# ZONED CLOCK
# =============================================================================


class ZonedClock:
    """
    Day arithmetic in one fixed zone.

    Usage:
        clock = ZonedClock("America/New_York")
        start = clock.start_of_day(now)
        end = clock.start_of_day_plus(now, 3)
        clock.day_key(now)  # "2025-03-09"
    """

    def __init__(self, tz_name: str | None = None):
        self.tz_name = tz_name or config.AGENDA_TIMEZONE
        self.tz = ZoneInfo(self.tz_name)

    def __repr__(self) -> str:
        return f"ZonedClock({self.tz_name!r})"

    def local_date(self, instant: datetime) -> date:
        """Local calendar day of an instant."""
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=UTC)
        return instant.astimezone(self.tz).date()

    def midnight(self, day: date) -> datetime:
        """
        UTC instant of local midnight for a calendar day.

        zoneinfo resolves a nonexistent midnight (gap) with the pre-transition
        offset, which lands on the transition instant, i.e. the first instant
        of that local day.
        """
        return datetime.combine(day, time.min, tzinfo=self.tz).astimezone(UTC)

    def start_of_day(self, instant: datetime) -> datetime:
        """UTC instant of local midnight of the instant's local day."""
        return self.midnight(self.local_date(instant))

    def start_of_day_plus(self, instant: datetime, days: int) -> datetime:
        """
        UTC instant of local midnight, `days` local calendar days after the
        instant's local day. Lengths of intervening days are not assumed.
        """
        return self.midnight(self.local_date(instant) + timedelta(days=days))

    def day_key(self, instant: datetime) -> str:
        """Local calendar-day string, "YYYY-MM-DD"."""
        return self.local_date(instant).isoformat()

    def format_day_header(self, day_key: str) -> str:
        """
        Display label for a day key, e.g. "Tue, Jun 3".

        A day key is already local, so no zone conversion happens here.
        Malformed keys are returned unchanged.
        """
        day = parse_day(day_key) if isinstance(day_key, str) and len(day_key) == 10 else None
        if day is None:
            return str(day_key)
        return f"{day:%a}, {day:%b} {day.day}"
