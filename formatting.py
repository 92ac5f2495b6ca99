from typing import Final

from goal_events import Goal, Matchup

GOAL_ALERT: Final[str] = "🚨"


def _goal_body(goal: Goal, teams: Matchup) -> str:
    lines = [
        f"{teams.away} vs. {teams.home}",
        f"{goal.scorer} ({goal.team}) is the scorer!",
    ]
    if goal.assists:
        lines.append(f"Assists: {goal.assists}")
    lines.append(f"Time: {goal.clock} - {goal.period}")
    lines.append(f"Score: {goal.display_score}")
    return "\n".join(lines)


def format_goal_message(goal: Goal, teams: Matchup) -> str:
    """
    Announcement post:
      GOAL! 🚨
      EDM vs. TOR
      Connor McDavid (#97) (EDM) is the scorer!
      Assists: ...            (only when there are assists)
      Time: 04:12 - 1
      Score: 1 - 0
    """
    return f"GOAL! {GOAL_ALERT}\n" + _goal_body(goal, teams)


def format_correction_message(goal: Goal, teams: Matchup, previous: Goal) -> str:
    """Correction post, always describing the new goal values."""
    message = "CORRECTION: "
    if goal.scorer != previous.scorer:
        message += f"Goal now credited to {goal.scorer} (previously {previous.scorer})\n"
    return message + _goal_body(goal, teams)
