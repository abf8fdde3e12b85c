from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from errors import InvalidTimestampError


def get_local_tz(tz_name):
    try:
        return ZoneInfo(tz_name) if tz_name else datetime.now().astimezone().tzinfo
    except (ZoneInfoNotFoundError, ValueError, TypeError):
        return datetime.now().astimezone().tzinfo


def parse_timestamp(value, tzinfo):
    if value is None:
        return None
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except (ValueError, AttributeError) as exc:
        raise InvalidTimestampError(
            f"Invalid timestamp {value}. Use ISO 8601, e.g. 2024-01-05T10:30:00+01:00.",
            detail={"timestamp": value},
        ) from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tzinfo)
    return dt


def to_rfc3339(dt):
    return dt.isoformat().replace("+00:00", "Z")
