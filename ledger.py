# ledger.py
# In-memory ledger of goals we have seen today: identity key -> TrackedGoal.
# Nothing is persisted; a fresh process starts with an empty ledger.

from __future__ import annotations

import datetime
import os
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from game_day import GameDayClock
from goal_events import Goal

# How long to remember a goal (hours)
SCORE_MAX_AGE_HOURS: float = float(os.getenv("SCORE_MAX_AGE_HOURS", "6"))
# A posting lock older than this is considered abandoned (seconds)
LOCK_STALE_SECONDS: float = float(os.getenv("LOCK_STALE_SECONDS", "60"))


@dataclass
class TrackedGoal:
    key: str
    goal: Goal
    first_seen_at: datetime.datetime
    last_updated_at: datetime.datetime
    posted: bool = False
    update_count: int = 0


class GoalLedger:
    """
    Owns every TrackedGoal. Every read and write goes through these methods
    and is serialized by one lock, so goals from games processed in parallel
    cannot interleave half-applied updates.
    """

    def __init__(
        self,
        clock: Optional[GameDayClock] = None,
        max_age_hours: float = SCORE_MAX_AGE_HOURS,
        lock_stale_seconds: float = LOCK_STALE_SECONDS,
    ) -> None:
        self.clock = clock or GameDayClock()
        self.max_age = datetime.timedelta(hours=max_age_hours)
        self.lock_stale_seconds = lock_stale_seconds
        self._records: Dict[str, TrackedGoal] = {}
        self._posting_locks: Dict[str, tuple[str, datetime.datetime]] = {}
        self._mutex = threading.RLock()
        self._day = self.clock.today()
        print("[LEDGER] cleared previous goals at startup", flush=True)

    # ------------------------------------------------------------------
    # Basic table access
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        with self._mutex:
            return len(self._records)

    def __contains__(self, key: str) -> bool:
        with self._mutex:
            return key in self._records

    def get(self, key: str) -> Optional[TrackedGoal]:
        with self._mutex:
            return self._records.get(key)

    def records(self) -> List[TrackedGoal]:
        with self._mutex:
            return list(self._records.values())

    def records_for_game(self, game_id: int) -> List[TrackedGoal]:
        with self._mutex:
            return [r for r in self._records.values() if r.goal.game_id == game_id]

    def claim(self, key: str, goal: Goal) -> tuple[TrackedGoal, bool]:
        """
        Create an unposted record for `key` unless one exists.
        Returns (record, created).
        """
        with self._mutex:
            existing = self._records.get(key)
            if existing is not None:
                return existing, False
            now = self.clock.now()
            record = TrackedGoal(key=key, goal=goal, first_seen_at=now, last_updated_at=now)
            self._records[key] = record
            return record, True

    def upsert(self, key: str, goal: Goal) -> TrackedGoal:
        """Store `goal` under `key`, creating the record if needed."""
        with self._mutex:
            record, created = self.claim(key, goal)
            if not created:
                record.goal = goal
                record.last_updated_at = self.clock.now()
            return record

    def delete(self, key: str) -> bool:
        with self._mutex:
            self._posting_locks.pop(key, None)
            return self._records.pop(key, None) is not None

    def clear(self) -> None:
        with self._mutex:
            self._records.clear()
            self._posting_locks.clear()

    # ------------------------------------------------------------------
    # Posting state
    # ------------------------------------------------------------------

    def mark_posted(self, key: str, goal: Optional[Goal] = None) -> TrackedGoal:
        """Only call after the publisher confirmed the post."""
        with self._mutex:
            record = self._records[key]
            record.posted = True
            if goal is not None:
                record.goal = goal
            record.last_updated_at = self.clock.now()
            return record

    def record_correction(self, key: str, goal: Goal, max_updates: int) -> TrackedGoal:
        with self._mutex:
            record = self._records[key]
            record.goal = goal
            record.update_count = min(max_updates, record.update_count + 1)
            record.last_updated_at = self.clock.now()
            return record

    def consume_update(self, key: str, max_updates: int) -> TrackedGoal:
        """Spend an update slot without changing the tracked goal."""
        with self._mutex:
            record = self._records[key]
            record.update_count = min(max_updates, record.update_count + 1)
            return record

    def is_current(self, record: TrackedGoal) -> bool:
        return self.clock.is_today(record.last_updated_at)

    # ------------------------------------------------------------------
    # Per-key posting locks
    # ------------------------------------------------------------------

    def try_lock(self, key: str) -> Optional[str]:
        """
        Take the posting lock for `key`. Returns a token, or None when a
        live lock is already held. Locks older than lock_stale_seconds
        are force-cleared.
        """
        with self._mutex:
            held = self._posting_locks.get(key)
            if held is not None:
                age = self.clock.age_seconds(held[1])
                if age <= self.lock_stale_seconds:
                    return None
                print(f"[LEDGER] clearing stale posting lock for {key} ({age:.0f}s old)", flush=True)
            token = uuid.uuid4().hex
            self._posting_locks[key] = (token, self.clock.now())
            return token

    def unlock(self, key: str, token: str) -> None:
        with self._mutex:
            held = self._posting_locks.get(key)
            if held is not None and held[0] == token:
                del self._posting_locks[key]

    @contextmanager
    def posting_lock(self, key: str) -> Iterator[bool]:
        token = self.try_lock(key)
        try:
            yield token is not None
        finally:
            if token is not None:
                self.unlock(key, token)

    # ------------------------------------------------------------------
    # Retention
    # ------------------------------------------------------------------

    def roll_day(self) -> bool:
        """Clear everything the first time we notice a new calendar day."""
        with self._mutex:
            today = self.clock.today()
            if today == self._day:
                return False
            dropped = len(self._records)
            self.clear()
            self._day = today
        print(f"[LEDGER] new day {today.isoformat()}: cleared {dropped} goals", flush=True)
        return True

    def prune(self) -> List[str]:
        """Drop records from another day or older than the retention window."""
        removed: List[str] = []
        with self._mutex:
            now = self.clock.now()
            for key, record in list(self._records.items()):
                age = now - record.last_updated_at
                was_today = self.clock.is_today(record.last_updated_at)
                if was_today and age <= self.max_age:
                    continue
                print(
                    f"[LEDGER] removing old goal: {key} "
                    f"(age {int(age.total_seconds() // 60)} minutes, today={was_today})",
                    flush=True,
                )
                self.delete(key)
                removed.append(key)
        if removed:
            print(f"[LEDGER] pruned {len(removed)} old goals. {len(self)} remaining.", flush=True)
        return removed
