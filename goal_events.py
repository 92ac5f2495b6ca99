# goal_events.py
# Turn raw NHL play-by-play entries into Goal values.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Final, List, Optional, Union

from errors import MalformedPlay

UNKNOWN_PLAYER: Final[str] = "Unknown Player"
UNKNOWN_TEAM: Final[str] = "Unknown Team"

GOAL_TYPE_KEY: Final[str] = "goal"
REGULATION: Final[str] = "REG"


@dataclass(frozen=True)
class Matchup:
    away: str
    home: str


@dataclass(frozen=True)
class Goal:
    event_id: int
    game_id: int
    scorer: str
    assists: str
    team: str
    period: Union[int, str]
    clock: str
    raw_score: tuple[int, int]  # (away, home)

    @property
    def display_score(self) -> str:
        away, home = self.raw_score
        return f"{away} - {home}"

    @property
    def clock_minute(self) -> str:
        return self.clock.split(":")[0]


def _name_part(value: Any) -> str:
    # Roster names arrive localized ({"default": "Connor"}) or as plain strings.
    if isinstance(value, dict):
        return str(value.get("default") or "")
    return str(value or "")


def format_player(spot: Optional[Dict[str, Any]]) -> str:
    """'First Last (#N)' for a roster entry, or UNKNOWN_PLAYER."""
    if not spot:
        return UNKNOWN_PLAYER
    first = _name_part(spot.get("firstName"))
    last = _name_part(spot.get("lastName"))
    name = f"{first} {last}".strip()
    if not name:
        return UNKNOWN_PLAYER
    return f"{name} (#{spot.get('sweaterNumber')})"


def _roster_index(data: Dict[str, Any]) -> Dict[Any, Dict[str, Any]]:
    return {
        spot.get("playerId"): spot
        for spot in data.get("rosterSpots") or []
        if isinstance(spot, dict)
    }


def matchup_from(data: Dict[str, Any]) -> Matchup:
    return Matchup(
        away=(data.get("awayTeam") or {}).get("abbrev") or UNKNOWN_TEAM,
        home=(data.get("homeTeam") or {}).get("abbrev") or UNKNOWN_TEAM,
    )


def _scoring_team(owner_id: Any, data: Dict[str, Any]) -> str:
    home = data.get("homeTeam") or {}
    away = data.get("awayTeam") or {}
    if owner_id is not None and owner_id == home.get("id"):
        return home.get("abbrev") or UNKNOWN_TEAM
    if owner_id is not None and owner_id == away.get("id"):
        return away.get("abbrev") or UNKNOWN_TEAM
    return UNKNOWN_TEAM


def _period_label(descriptor: Dict[str, Any]) -> Union[int, str]:
    period_type = descriptor.get("periodType")
    if period_type == REGULATION:
        return descriptor.get("number")
    return period_type


def is_goal_play(play: Dict[str, Any]) -> bool:
    return play.get("typeDescKey") == GOAL_TYPE_KEY


def normalize_goal_play(play: Dict[str, Any], data: Dict[str, Any], game_id: int) -> Goal:
    """
    Build a Goal from one scoring play and the game it belongs to.

    Raises MalformedPlay when the play has no details block, no scoring
    player, no period descriptor, or no score. Unresolvable players and
    teams degrade to UNKNOWN_PLAYER / UNKNOWN_TEAM instead.
    """
    details = play.get("details")
    if not isinstance(details, dict):
        raise MalformedPlay(f"play {play.get('eventId')} has no details block")
    scorer_id = details.get("scoringPlayerId")
    if scorer_id is None:
        raise MalformedPlay(f"play {play.get('eventId')} has no scoringPlayerId")
    descriptor = play.get("periodDescriptor")
    if not isinstance(descriptor, dict):
        raise MalformedPlay(f"play {play.get('eventId')} has no periodDescriptor")
    try:
        raw_score = (int(details["awayScore"]), int(details["homeScore"]))
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedPlay(f"play {play.get('eventId')} has no usable score: {e}") from e

    roster = _roster_index(data)
    assists = ", ".join(
        format_player(roster.get(a.get("playerId")))
        for a in details.get("assists") or []
        if isinstance(a, dict)
    )

    goal = Goal(
        event_id=play.get("eventId"),
        game_id=game_id,
        scorer=format_player(roster.get(scorer_id)),
        assists=assists,
        team=_scoring_team(details.get("eventOwnerTeamId"), data),
        period=_period_label(descriptor),
        clock=play.get("timeInPeriod") or "00:00",
        raw_score=raw_score,
    )
    print(
        f"[GOAL] game {game_id} event {goal.event_id}: score {goal.display_score}, "
        f"time {goal.clock}, period {goal.period}",
        flush=True,
    )
    return goal


def extract_goals(data: Dict[str, Any], game_id: int) -> List[Goal]:
    """All well-formed goals in a play-by-play payload, in feed order."""
    goals: List[Goal] = []
    for play in data.get("plays") or []:
        if not isinstance(play, dict) or not is_goal_play(play):
            continue
        try:
            goals.append(normalize_goal_play(play, data, game_id))
        except MalformedPlay as e:
            print(f"[WARN] game {game_id}: dropping scoring play: {e}", flush=True)
    return goals


def find_play(data: Dict[str, Any], event_id: Any) -> Optional[Dict[str, Any]]:
    for play in data.get("plays") or []:
        if isinstance(play, dict) and play.get("eventId") == event_id:
            return play
    return None
