"""Calendar abstraction so day-boundary logic never reads the wall clock directly."""
from datetime import date, datetime, timedelta


def day_key(day: date) -> str:
    return day.isoformat()


def previous_day(key: str) -> str:
    return (date.fromisoformat(key) - timedelta(days=1)).isoformat()


def last_n_days(today: date, n: int) -> list[str]:
    """Day keys for the ``n`` days ending at ``today``, oldest first."""
    return [day_key(today - timedelta(days=i)) for i in range(n - 1, -1, -1)]


class Clock:
    """Local system calendar."""

    def today(self) -> date:
        return date.today()

    def now(self) -> datetime:
        return datetime.now()

    def today_key(self) -> str:
        return day_key(self.today())


class FixedClock(Clock):
    """A calendar pinned to a given day; ``advance`` rolls it forward."""

    def __init__(self, day: date):
        self.day = day

    def today(self) -> date:
        return self.day

    def now(self) -> datetime:
        return datetime.combine(self.day, datetime.min.time()).replace(hour=12)

    def advance(self, days: int = 1) -> date:
        self.day = self.day + timedelta(days=days)
        return self.day
