"""Week arithmetic. Weeks start on Monday."""

from datetime import UTC, date, datetime, timedelta


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by some drivers) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def to_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def start_of_week(value: date | datetime) -> date:
    """Monday on or before the given day."""
    day = to_date(value)
    return day - timedelta(days=day.weekday())


def end_of_week(value: date | datetime) -> date:
    """Sunday of the week containing the given day."""
    return start_of_week(value) + timedelta(days=6)


def add_weeks(value: date, weeks: int) -> date:
    return value + timedelta(weeks=weeks)


def weeks_between(start: date | datetime, end: date | datetime) -> list[date]:
    """Every Monday from the week of ``start`` through the week of ``end``."""
    weeks = []
    current = start_of_week(start)
    last = start_of_week(end)
    while current <= last:
        weeks.append(current)
        current = add_weeks(current, 1)
    return weeks


def generate_weeks(count: int = 8, today: date | None = None) -> list[date]:
    """``count`` consecutive Mondays starting with the current week."""
    first = start_of_week(today or utcnow().date())
    return [add_weeks(first, i) for i in range(count)]
