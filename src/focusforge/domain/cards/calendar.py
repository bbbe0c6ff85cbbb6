"""
Day-granularity calendar helpers.

"Today" is always computed in one explicitly chosen zone so that due dates do
not drift across zone boundaries.
"""

from datetime import UTC, date, datetime, time
from zoneinfo import ZoneInfo

from focusforge.domain.constants import DEFAULT_TIMEZONE


def _zone(tz: str | ZoneInfo) -> ZoneInfo:
    return ZoneInfo(tz) if isinstance(tz, str) else tz


def today_in(tz: str | ZoneInfo, now: datetime | None = None) -> date:
    """Return the calendar date in `tz` for `now` (defaults to the current instant)."""
    zone = _zone(tz)
    if now is None:
        return datetime.now(zone).date()
    if now.tzinfo is None:
        # Naive datetimes are treated as UTC
        now = now.replace(tzinfo=UTC)
    return now.astimezone(zone).date()


def as_day(value: date | datetime) -> date:
    """Drop any time-of-day component."""
    if isinstance(value, datetime):
        return value.date()
    return value


def utc_now() -> datetime:
    return datetime.now(UTC)


def encode_day(day: date, tz: str | ZoneInfo = DEFAULT_TIMEZONE) -> str:
    """
    Encode a date as the UTC instant of its local midnight in `tz`.

    In UTC this is simply `YYYY-MM-DDT00:00:00.000Z`; in Europe/Berlin the
    16th of October becomes `...-15T22:00:00.000Z`.
    """
    midnight = datetime.combine(day, time(), tzinfo=_zone(tz)).astimezone(UTC)
    return midnight.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def decode_day(raw: str, tz: str | ZoneInfo = DEFAULT_TIMEZONE) -> date:
    """
    Decode either a bare `YYYY-MM-DD` or a timestamp.

    Timestamps are read as instants and mapped to their calendar date in `tz`,
    so a local midnight written in UTC lands back on the right day.
    """
    text = raw.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    return decode_timestamp(text).astimezone(_zone(tz)).date()


def encode_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat().replace("+00:00", "Z")


def decode_timestamp(raw: str) -> datetime:
    moment = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment
