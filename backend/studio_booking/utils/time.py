from datetime import date, datetime, timezone


def day_index(value: date) -> int:
    """Grid day index of a calendar date: Sunday = 0, Monday = 1, ... Saturday = 6."""
    return (value.weekday() + 1) % 7


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
