from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp from the provider into naive UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return to_utc_naive(datetime.fromisoformat(value))
