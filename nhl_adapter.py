# nhl_adapter.py
# NHL web API adapter for the goal bot.
#
# Public API:
#   fetch_schedule() -> dict
#   live_game_ids(schedule: dict) -> list[int]
#   get_live_game_ids() -> list[int]
#   fetch_play_by_play(game_id: int) -> dict
#
# Play-by-play payloads are returned as-is after validation; the parts we read:
#   {
#       "plays": [ {"eventId", "typeDescKey", "timeInPeriod",
#                   "periodDescriptor": {"number", "periodType"},
#                   "details": {"scoringPlayerId", "eventOwnerTeamId",
#                               "assists": [{"playerId"}], "awayScore", "homeScore"}} ],
#       "rosterSpots": [ {"playerId", "firstName", "lastName", "sweaterNumber"} ],
#       "homeTeam": {"id", "abbrev"},
#       "awayTeam": {"id", "abbrev"},
#   }

from __future__ import annotations

import os
from typing import Final, Dict, Any, List

import requests

from errors import MalformedResponse, ProviderUnavailable

DEBUG: bool = os.getenv("DEBUG_NHL", "1").lower() not in ("0", "false", "no")
TIMEOUT: float = float(os.getenv("NHL_TIMEOUT", "10.0"))
API_BASE_URL: str = os.getenv("NHL_API_BASE", "https://api-web.nhle.com/v1").rstrip("/")

USER_AGENT: Final[str] = "Mozilla/5.0 (compatible; NHLGoalBot/1.0)"

HEADERS: Final[Dict[str, str]] = {
    "User-Agent": USER_AGENT,
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Connection": "keep-alive",
}

LIVE_STATES: Final[frozenset[str]] = frozenset({"LIVE"})


def _log(msg: str) -> None:
    if DEBUG:
        print(f"[NHL] {msg}", flush=True)


def _get_json(url: str) -> Dict[str, Any]:
    """
    GET a JSON document.

    Raises ProviderUnavailable for transport failures and non-2xx answers,
    MalformedResponse when the body is not JSON.
    """
    try:
        r = requests.get(url, headers=HEADERS, timeout=TIMEOUT)
    except requests.RequestException as e:
        _log(f"[DEBUG] GET error for {url}: {e}")
        raise ProviderUnavailable(f"Failed to fetch {url}: {e}") from e

    if not r.ok:
        _log(f"[DEBUG] GET {url} -> {r.status_code}")
        raise ProviderUnavailable(f"HTTP error! status: {r.status_code}", status=r.status_code)

    content_type = r.headers.get("Content-Type") or ""
    if "application/json" not in content_type:
        raise MalformedResponse(f"Unexpected Content-Type: {content_type or None}")

    try:
        data = r.json()
    except ValueError as e:
        raise MalformedResponse(f"Undecodable JSON from {url}: {e}") from e

    if not isinstance(data, dict):
        raise MalformedResponse(f"Expected a JSON object from {url}")
    return data


def fetch_schedule() -> Dict[str, Any]:
    return _get_json(f"{API_BASE_URL}/schedule/now")


def live_game_ids(schedule: Dict[str, Any]) -> List[int]:
    """Pull the ids of in-progress games out of a schedule payload."""
    ids: List[int] = []
    for week in schedule.get("gameWeek") or []:
        for game in week.get("games") or []:
            if game.get("gameState") in LIVE_STATES and game.get("id") is not None:
                ids.append(game["id"])
    return ids


def get_live_game_ids() -> List[int]:
    ids = live_game_ids(fetch_schedule())
    if ids:
        _log(f"[INFO] live game ids: {ids}")
    return ids


def validate_game_data(data: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(data.get("plays"), list):
        raise MalformedResponse("Invalid game data structure: missing plays list")
    return data


def fetch_play_by_play(game_id: int) -> Dict[str, Any]:
    data = _get_json(f"{API_BASE_URL}/gamecenter/{game_id}/play-by-play")
    return validate_game_data(data)
