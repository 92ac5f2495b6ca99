# goal_tracker.py
# Delay, verify, publish. Decides what to do with each observed goal and
# drives the announcement / correction posts around that decision.

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from errors import MalformedPlay, MalformedResponse, ProviderUnavailable
from formatting import format_correction_message, format_goal_message
from goal_events import Goal, Matchup, extract_goals, find_play, matchup_from, normalize_goal_play
from ledger import GoalLedger
from posting_rules import MAX_UPDATES, Decision, Resolution, changed_fields, resolve_goal

INITIAL_DELAY: float = float(os.getenv("INITIAL_DELAY_SECONDS", "45"))
POST_DELAY: float = float(os.getenv("POST_DELAY_SECONDS", "180"))
COUNT_EMPTY_UPDATES: bool = os.getenv("COUNT_EMPTY_UPDATES", "0").lower() in ("1", "true", "yes")


@dataclass
class TrackerSettings:
    initial_delay: float = INITIAL_DELAY
    post_delay: float = POST_DELAY
    max_updates: int = MAX_UPDATES
    # Whether an update candidate with nothing to correct still uses a slot.
    count_empty_updates: bool = COUNT_EMPTY_UPDATES


@dataclass
class GameReport:
    game_id: int
    goals: int = 0
    outcomes: Dict[str, int] = field(default_factory=dict)


class GoalTracker:
    def __init__(
        self,
        ledger: GoalLedger,
        publish: Callable[[str], bool],
        fetch_play_by_play: Callable[[int], Dict[str, Any]],
        settings: TrackerSettings | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.ledger = ledger
        self.publish = publish
        self.fetch_play_by_play = fetch_play_by_play
        self.settings = settings or TrackerSettings()
        self.sleep = sleep

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def process_game(self, game_id: int) -> GameReport:
        """
        Fetch one game's play-by-play and run every goal in it through
        handle_goal. Provider errors propagate to the caller.
        """
        data = self.fetch_play_by_play(game_id)
        teams = matchup_from(data)
        report = GameReport(game_id=game_id)
        for goal in extract_goals(data, game_id):
            outcome = self.handle_goal(goal, teams)
            report.goals += 1
            report.outcomes[outcome.value] = report.outcomes.get(outcome.value, 0) + 1
        return report

    def handle_goal(self, goal: Goal, teams: Matchup) -> Resolution:
        decision = resolve_goal(goal, self.ledger, self.settings.max_updates)
        record = self.ledger.get(decision.key)
        print(
            f"[GOAL] {decision.key}: {decision.resolution.value} "
            f"(posted={record.posted if record else False}, "
            f"updates={record.update_count if record else 0})",
            flush=True,
        )

        if decision.resolution is Resolution.NEW:
            self._announce(decision, goal, teams)
        elif decision.resolution is Resolution.UPDATE_CANDIDATE:
            self._correct(decision, goal, teams)
        elif decision.resolution is Resolution.DUPLICATE:
            print(
                f"[GOAL] skipping duplicate: period {goal.period}, minute {goal.clock_minute}, "
                f"{goal.scorer}, score {goal.display_score}",
                flush=True,
            )
        return decision.resolution

    # ------------------------------------------------------------------
    # Announcements
    # ------------------------------------------------------------------

    def _settled_goal(self, goal: Goal, data: Dict[str, Any]) -> Goal | None:
        """
        The same event as re-read after the settle delay, or None when the
        provider no longer lists it.
        """
        play = find_play(data, goal.event_id)
        if play is None:
            return None
        try:
            return normalize_goal_play(play, data, goal.game_id)
        except MalformedPlay as e:
            print(f"[WARN] {goal.game_id}: settled play unreadable ({e}); using first sighting", flush=True)
            return goal

    def _announce(self, decision: Decision, goal: Goal, teams: Matchup) -> bool:
        key = decision.key
        with self.ledger.posting_lock(key) as acquired:
            if not acquired:
                print(f"[GOAL] {key} is already being posted; leaving it alone", flush=True)
                return False

            if decision.fresh:
                print(f"[GOAL] new goal detected, waiting {self.settings.initial_delay:.0f}s before posting...", flush=True)
                self.sleep(self.settings.initial_delay)

            try:
                data = self.fetch_play_by_play(goal.game_id)
            except (ProviderUnavailable, MalformedResponse) as e:
                print(f"[ERROR] could not verify goal {key}: {e}; will retry next cycle", flush=True)
                return False

            settled = self._settled_goal(goal, data)
            record = self.ledger.get(key)
            if settled is None:
                print(f"[GOAL] goal {key} no longer exists; dropping it", flush=True)
                self.ledger.delete(key)
                return False
            if record is None or record.posted:
                print(f"[GOAL] goal {key} was already posted or swept; nothing to do", flush=True)
                return False

            message = format_goal_message(settled, teams)
            print(f"[GOAL] attempting to post:\n{message}", flush=True)
            if not self.publish(message):
                print(f"[ERROR] posting goal {key} failed; will retry next cycle", flush=True)
                return False

            self.ledger.mark_posted(key, settled)
            print(f"[GOAL] successfully posted goal {key}", flush=True)

        self.sleep(self.settings.post_delay)
        return True

    # ------------------------------------------------------------------
    # Corrections
    # ------------------------------------------------------------------

    def _correct(self, decision: Decision, goal: Goal, teams: Matchup) -> bool:
        key = decision.key
        max_updates = self.settings.max_updates
        with self.ledger.posting_lock(key) as acquired:
            if not acquired:
                print(f"[GOAL] {key} is busy; correction deferred", flush=True)
                return False

            record = self.ledger.get(key)
            if record is None or record.update_count >= max_updates:
                return False

            changes: List[str] = changed_fields(goal, record.goal)
            if not changes:
                if self.settings.count_empty_updates:
                    self.ledger.consume_update(key, max_updates)
                return False

            message = format_correction_message(goal, teams, previous=record.goal)
            print(f"[GOAL] correcting {key} ({', '.join(changes)}):\n{message}", flush=True)
            if not self.publish(message):
                print(f"[ERROR] correction for {key} failed; dropping it", flush=True)
                return False

            updated = self.ledger.record_correction(key, goal, max_updates)
            print(f"[GOAL] posted correction {updated.update_count}/{max_updates} for {key}", flush=True)
            return True
