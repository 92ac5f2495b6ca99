"""Shared fixtures: scripted clock, play-by-play builders, recording fakes"""
import datetime
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

import pytest

from game_day import GameDayClock
from goal_tracker import GoalTracker, TrackerSettings
from ledger import GoalLedger

LA = ZoneInfo("America/Los_Angeles")

HOME_ID = 22
AWAY_ID = 10

ROSTER = [
    {"playerId": 42, "firstName": {"default": "A"}, "lastName": {"default": "B"}, "sweaterNumber": 9},
    {"playerId": 43, "firstName": {"default": "C"}, "lastName": {"default": "D"}, "sweaterNumber": 19},
    {"playerId": 44, "firstName": {"default": "E"}, "lastName": {"default": "F"}, "sweaterNumber": 4},
    {"playerId": 45, "firstName": {"default": "G"}, "lastName": {"default": "H"}, "sweaterNumber": 55},
    {"playerId": 46, "firstName": {"default": "I"}, "lastName": {"default": "J"}, "sweaterNumber": 8},
]


class FakeClock(GameDayClock):
    def __init__(self, start: datetime.datetime):
        super().__init__(tz=LA, now_fn=lambda: self.current)
        self.current = start

    def advance(self, **kwargs) -> None:
        self.current = self.current + datetime.timedelta(**kwargs)


class RecordingPublisher:
    """publish(text) -> bool that remembers every call. `results` is consumed first."""

    def __init__(self, results: Optional[List[bool]] = None, default: bool = True):
        self.results = list(results or [])
        self.default = default
        self.posts: List[str] = []
        self.logins = 0

    def __call__(self, text: str) -> bool:
        return self.publish(text)

    def publish(self, text: str) -> bool:
        self.posts.append(text)
        if self.results:
            return self.results.pop(0)
        return self.default

    def login(self) -> None:
        self.logins += 1


class RecordingSleep:
    def __init__(self, clock: Optional[FakeClock] = None):
        self.calls: List[float] = []
        self.clock = clock

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock(datetime.datetime(2025, 1, 15, 19, 0, tzinfo=LA))


@pytest.fixture
def ledger(clock):
    return GoalLedger(clock, max_age_hours=6, lock_stale_seconds=60)


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def sleeper(clock):
    return RecordingSleep(clock)


@pytest.fixture
def make_play():
    def _make(
        event_id: int = 101,
        scorer: Optional[int] = 42,
        assists: Optional[List[int]] = None,
        period: int = 1,
        period_type: str = "REG",
        clock: str = "04:12",
        away: int = 1,
        home: int = 0,
        owner: int = AWAY_ID,
    ) -> Dict[str, Any]:
        details: Dict[str, Any] = {
            "eventOwnerTeamId": owner,
            "awayScore": away,
            "homeScore": home,
            "assists": [{"playerId": pid} for pid in (assists or [])],
        }
        if scorer is not None:
            details["scoringPlayerId"] = scorer
        return {
            "eventId": event_id,
            "typeDescKey": "goal",
            "timeInPeriod": clock,
            "periodDescriptor": {"number": period, "periodType": period_type},
            "details": details,
        }
    return _make


@pytest.fixture
def make_pbp():
    def _make(plays: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "plays": plays,
            "rosterSpots": ROSTER,
            "homeTeam": {"id": HOME_ID, "abbrev": "TOR"},
            "awayTeam": {"id": AWAY_ID, "abbrev": "EDM"},
        }
    return _make


@pytest.fixture
def settings():
    return TrackerSettings(initial_delay=45, post_delay=180, max_updates=2, count_empty_updates=False)


@pytest.fixture
def feed():
    """Mutable game_id -> play-by-play map standing in for the provider."""
    return {}


@pytest.fixture
def tracker(ledger, publisher, feed, settings, sleeper):
    return GoalTracker(ledger, publisher, lambda game_id: feed[game_id], settings=settings, sleep=sleeper)
