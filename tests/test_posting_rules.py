"""Tests for goal identity keys and new / duplicate / update classification"""
import dataclasses

from goal_events import Goal
from posting_rules import Resolution, changed_fields, goal_key, is_same_goal, resolve_goal


def make_goal(**overrides) -> Goal:
    base = dict(
        event_id=101,
        game_id=2024020001,
        scorer="A B (#9)",
        assists="C D (#19)",
        team="EDM",
        period=1,
        clock="04:12",
        raw_score=(1, 0),
    )
    base.update(overrides)
    return Goal(**base)


def post(ledger, goal: Goal) -> str:
    key = goal_key(goal)
    ledger.claim(key, goal)
    ledger.mark_posted(key)
    return key


class TestGoalKey:
    def test_uses_minute_only(self):
        assert goal_key(make_goal(clock="04:12")) == goal_key(make_goal(clock="04:59"))
        assert goal_key(make_goal(clock="04:12")) != goal_key(make_goal(clock="05:12"))

    def test_shape(self):
        assert goal_key(make_goal()) == "2024020001-101-A B (#9)-1-04-1-0"


class TestChangedFields:
    def test_clock_is_ignored(self):
        assert changed_fields(make_goal(clock="04:09"), make_goal(clock="04:12")) == []

    def test_reports_each_field(self):
        new = make_goal(scorer="X Y (#1)", assists="", period="OT", raw_score=(2, 0))
        assert changed_fields(new, make_goal()) == ["scorer", "assists", "period", "score"]

    def test_is_same_goal_ignores_seconds_and_event(self):
        assert is_same_goal(make_goal(clock="04:09", event_id=999), make_goal())
        assert not is_same_goal(make_goal(clock="05:00"), make_goal())


class TestResolveGoal:
    def test_first_sighting_claims_slot(self, ledger):
        goal = make_goal()
        decision = resolve_goal(goal, ledger)
        assert decision.resolution is Resolution.NEW
        assert decision.fresh is True
        record = ledger.get(decision.key)
        assert record is not None and record.posted is False

    def test_unposted_record_is_retried(self, ledger):
        goal = make_goal()
        resolve_goal(goal, ledger)
        decision = resolve_goal(goal, ledger)
        assert decision.resolution is Resolution.NEW
        assert decision.fresh is False
        assert len(ledger) == 1

    def test_same_minute_different_seconds_is_duplicate(self, ledger):
        post(ledger, make_goal(clock="04:12"))
        decision = resolve_goal(make_goal(clock="04:09"), ledger)
        assert decision.resolution is Resolution.DUPLICATE

    def test_shifted_event_is_duplicate(self, ledger):
        post(ledger, make_goal(clock="04:12"))
        decision = resolve_goal(make_goal(event_id=202, clock="04:40"), ledger)
        assert decision.resolution is Resolution.DUPLICATE
        assert len(ledger) == 1

    def test_duplicate_scan_ignores_unposted_and_other_games(self, ledger):
        other_game = make_goal(game_id=2024020002)
        post(ledger, other_game)
        pending = make_goal(event_id=303)
        ledger.claim(goal_key(pending), pending)

        decision = resolve_goal(make_goal(event_id=404), ledger)
        assert decision.resolution is Resolution.NEW

    def test_assist_change_is_update_candidate(self, ledger):
        key = post(ledger, make_goal())
        decision = resolve_goal(make_goal(assists="E F (#4)"), ledger)
        assert decision.resolution is Resolution.UPDATE_CANDIDATE
        assert decision.key == key

    def test_scorer_change_targets_original_record(self, ledger):
        key = post(ledger, make_goal())
        decision = resolve_goal(make_goal(scorer="C D (#19)", assists=""), ledger)
        assert decision.resolution is Resolution.UPDATE_CANDIDATE
        assert decision.key == key
        assert len(ledger) == 1

    def test_updates_exhausted_is_skip(self, ledger):
        key = post(ledger, make_goal())
        ledger.get(key).update_count = 2
        decision = resolve_goal(make_goal(assists="E F (#4)"), ledger, max_updates=2)
        assert decision.resolution is Resolution.SKIP

    def test_record_from_previous_day_is_replaced(self, ledger, clock):
        goal = make_goal()
        key = post(ledger, goal)
        ledger.get(key).last_updated_at = clock.now().replace(day=14)

        decision = resolve_goal(goal, ledger)
        assert decision.resolution is Resolution.NEW
        assert decision.fresh is True
        assert ledger.get(key).posted is False

    def test_score_revision_on_same_event_is_update_candidate(self, ledger):
        key = post(ledger, make_goal())
        revised = dataclasses.replace(make_goal(), raw_score=(1, 1))
        decision = resolve_goal(revised, ledger)
        assert decision.resolution is Resolution.UPDATE_CANDIDATE
        assert decision.key == key
