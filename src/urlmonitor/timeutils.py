"""UTC clock helpers and display-timezone formatting."""
from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Current instant as a naive UTC datetime, the form every table stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_local(value: datetime, tz_name: str) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(tz_name))


def format_local(value: datetime, tz_name: str) -> str:
    """Render as ``M/D/YYYY, hh:MM:SS AM`` in the given timezone."""
    local = to_local(value, tz_name)
    return f"{local.month}/{local.day}/{local.year}, {local.strftime('%I:%M:%S %p')}"
