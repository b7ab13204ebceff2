from __future__ import annotations

from datetime import datetime, timezone

from dateutil import parser as date_parser


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: datetime | str) -> datetime:
    """Coerce a stored timestamp into an aware UTC datetime.

    Naive values are assumed to already be in UTC. Strings may use either a
    space or ``T`` separator and a ``Z`` suffix, as returned by PostgREST.
    """
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str):
        try:
            moment = date_parser.isoparse(value.strip().replace(" ", "T", 1))
        except ValueError as exc:
            raise ValueError(f"Unsupported datetime value: {value!r}") from exc
    else:
        raise ValueError(f"Unsupported datetime value: {value!r}")

    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def format_countdown(seconds: int | float | None) -> str:
    if seconds is None:
        return "--:--"
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


def format_relative_time(value: datetime | str, *, now: datetime | None = None) -> str:
    reference = now or utcnow()
    moment = parse_timestamp(value)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)

    total_seconds = int((reference - moment).total_seconds())

    if total_seconds < 60:
        return "just now"

    minutes = total_seconds // 60
    if minutes == 1:
        return "1 minute ago"
    if minutes < 60:
        return f"{minutes} minutes ago"

    hours = minutes // 60
    if hours == 1:
        return "1 hour ago"
    if hours < 24:
        return f"{hours} hours ago"

    days = hours // 24
    if days == 1:
        return "Yesterday"
    return f"{days} days ago"
