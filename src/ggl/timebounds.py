from __future__ import annotations

import dataclasses
import datetime as dt
from collections.abc import Callable

DEFAULT_LOOKBACK = dt.timedelta(weeks=1)


@dataclasses.dataclass(frozen=True)
class Clock:
    """Source of "now" in the local offset; tests pass a fixed one."""

    now_fn: Callable[[], dt.datetime] = lambda: dt.datetime.now().astimezone()

    def now(self) -> dt.datetime:
        now = self.now_fn()
        if now.tzinfo is None:
            now = now.astimezone()
        return now

    def today(self) -> dt.date:
        return self.now().date()


def fixed_clock(now: dt.datetime) -> Clock:
    return Clock(now_fn=lambda: now)


def midnight_utc(day: dt.date) -> dt.datetime:
    return dt.datetime(day.year, day.month, day.day, tzinfo=dt.timezone.utc)


def parse_until(value: str) -> dt.date:
    s = (value or "").strip()
    try:
        return dt.datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        raise ValueError(f"Failed to parse 'until' date: {value!r} (expected e.g. 2022-12-31)") from None


def time_boundary(until: str | None = None, clock: Clock | None = None) -> dt.datetime:
    """
    Midnight UTC of the `until` date, or of the local calendar day one week ago.
    Commits authored strictly before the returned instant are left out of the report.
    """
    if until:
        return midnight_utc(parse_until(until))
    clock = clock or Clock()
    return midnight_utc(clock.today() - DEFAULT_LOOKBACK)
