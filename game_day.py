# game_day.py
# "Is this today?" decisions for the goal ledger, in one fixed time zone.

from __future__ import annotations

import datetime
import os
from typing import Callable, Optional
from zoneinfo import ZoneInfo

# Use Los Angeles time (Pacific) for defining the "game day"
LOCAL_TZ = ZoneInfo(os.getenv("GOAL_BOT_TZ", "America/Los_Angeles"))


class GameDayClock:
    """
    Wall clock pinned to the reference time zone.

    Pass `now_fn` to freeze or script time in tests; it must return an
    aware datetime.
    """

    def __init__(
        self,
        tz: ZoneInfo = LOCAL_TZ,
        now_fn: Optional[Callable[[], datetime.datetime]] = None,
    ) -> None:
        self.tz = tz
        self._now_fn = now_fn

    def now(self) -> datetime.datetime:
        if self._now_fn is not None:
            return self._now_fn().astimezone(self.tz)
        return datetime.datetime.now(self.tz)

    def today(self) -> datetime.date:
        return self.now().date()

    def day_of(self, ts: datetime.datetime) -> datetime.date:
        return ts.astimezone(self.tz).date()

    def is_today(self, ts: datetime.datetime) -> bool:
        return self.day_of(ts) == self.today()

    def age_seconds(self, ts: datetime.datetime) -> float:
        return (self.now() - ts).total_seconds()
