"""Tests for announcement and correction message text"""
from formatting import format_correction_message, format_goal_message
from goal_events import Goal, Matchup

TEAMS = Matchup(away="EDM", home="TOR")
GOAL = Goal(
    event_id=1, game_id=1, scorer="A B (#9)", assists="", team="EDM",
    period="OT", clock="01:30", raw_score=(3, 2),
)


def test_goal_message_without_assists():
    assert format_goal_message(GOAL, TEAMS) == (
        "GOAL! 🚨\nEDM vs. TOR\nA B (#9) (EDM) is the scorer!\nTime: 01:30 - OT\nScore: 3 - 2"
    )


def test_goal_message_with_assists():
    goal = Goal(**{**GOAL.__dict__, "assists": "C D (#19), E F (#4)", "period": 2})
    text = format_goal_message(goal, TEAMS)
    assert "\nAssists: C D (#19), E F (#4)\nTime: 01:30 - 2\n" in text


def test_correction_uses_new_values():
    previous = Goal(**{**GOAL.__dict__, "raw_score": (2, 2)})
    text = format_correction_message(GOAL, TEAMS, previous=previous)
    assert text == (
        "CORRECTION: EDM vs. TOR\nA B (#9) (EDM) is the scorer!\nTime: 01:30 - OT\nScore: 3 - 2"
    )


def test_correction_calls_out_scorer_change():
    previous = Goal(**{**GOAL.__dict__, "scorer": "X Y (#1)"})
    text = format_correction_message(GOAL, TEAMS, previous=previous)
    assert text.startswith("CORRECTION: Goal now credited to A B (#9) (previously X Y (#1))\nEDM vs. TOR\n")
