# posting_rules.py
from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Final, List, Optional

from goal_events import Goal
from ledger import GoalLedger, TrackedGoal

MAX_UPDATES: Final[int] = int(os.getenv("MAX_UPDATES", "2"))


class Resolution(str, Enum):
    NEW = "new"
    DUPLICATE = "duplicate"
    UPDATE_CANDIDATE = "update_candidate"
    SKIP = "skip"


@dataclass(frozen=True)
class Decision:
    resolution: Resolution
    key: str
    # True only when this observation created the ledger record.
    fresh: bool = False


def goal_key(goal: Goal) -> str:
    """
    Identity key for a goal. Uses the clock minute only, so seconds drift
    inside a minute maps to the same key.
    """
    away, home = goal.raw_score
    return (
        f"{goal.game_id}-{goal.event_id}-{goal.scorer}-{goal.period}-"
        f"{goal.clock_minute}-{away}-{home}"
    )


def is_same_goal(a: Goal, b: Goal) -> bool:
    """Same period, clock minute, scorer and score; seconds are ignored."""
    return (
        a.period == b.period
        and a.clock_minute == b.clock_minute
        and a.scorer == b.scorer
        and a.raw_score == b.raw_score
    )


def changed_fields(new: Goal, old: Goal) -> List[str]:
    """Fields worth a correction post. The clock is not compared."""
    changed: List[str] = []
    if new.scorer != old.scorer:
        changed.append("scorer")
    if new.assists != old.assists:
        changed.append("assists")
    if new.period != old.period:
        changed.append("period")
    if new.display_score != old.display_score:
        changed.append("score")
    return changed


def _posted_today(ledger: GoalLedger, game_id: int) -> List[TrackedGoal]:
    return [r for r in ledger.records_for_game(game_id) if r.posted and ledger.is_current(r)]


def find_duplicate(goal: Goal, ledger: GoalLedger) -> Optional[TrackedGoal]:
    for record in _posted_today(ledger, goal.game_id):
        if is_same_goal(record.goal, goal):
            return record
    return None


def find_same_event(goal: Goal, ledger: GoalLedger) -> Optional[TrackedGoal]:
    for record in _posted_today(ledger, goal.game_id):
        if record.goal.event_id == goal.event_id:
            return record
    return None


def can_update(record: TrackedGoal, ledger: GoalLedger, max_updates: int) -> bool:
    return record.posted and record.update_count < max_updates and ledger.is_current(record)


def resolve_goal(goal: Goal, ledger: GoalLedger, max_updates: int = MAX_UPDATES) -> Decision:
    """
    Classify one observed goal against the ledger.

    - exact key, not yet posted          -> NEW (retry, no settle delay)
    - exact key, posted, nothing changed -> DUPLICATE
    - exact key, posted, assists changed -> UPDATE_CANDIDATE while slots remain
    - no exact key, a posted goal of this game matches ignoring seconds
                                         -> DUPLICATE
    - no exact key, a posted goal with the same eventId (scorer/score/period
      revised)                           -> UPDATE_CANDIDATE on that record
    - otherwise                          -> NEW, and the slot is claimed now
    """
    key = goal_key(goal)
    record = ledger.get(key)

    if record is not None and not ledger.is_current(record):
        print(f"[LEDGER] removing goal {key} from a different day", flush=True)
        ledger.delete(key)
        record = None

    if record is not None:
        if not record.posted:
            return Decision(Resolution.NEW, key)
        if not changed_fields(goal, record.goal):
            return Decision(Resolution.DUPLICATE, key)
        if can_update(record, ledger, max_updates):
            return Decision(Resolution.UPDATE_CANDIDATE, key)
        return Decision(Resolution.SKIP, key)

    duplicate = find_duplicate(goal, ledger)
    if duplicate is not None:
        return Decision(Resolution.DUPLICATE, duplicate.key)

    prior = find_same_event(goal, ledger)
    if prior is not None:
        if can_update(prior, ledger, max_updates):
            return Decision(Resolution.UPDATE_CANDIDATE, prior.key)
        return Decision(Resolution.SKIP, prior.key)

    _, created = ledger.claim(key, goal)
    return Decision(Resolution.NEW, key, fresh=created)
