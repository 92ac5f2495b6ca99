# errors.py
# Failure types for the goal bot. Play- and game-level errors are handled
# close to where they happen; only login/restart exhaustion reaches main.run().

from __future__ import annotations

from typing import Final, Optional

import requests

UPSTREAM_STATUSES: Final[frozenset[int]] = frozenset({502, 503, 504})
UPSTREAM_MARKERS: Final[tuple[str, ...]] = ("Upstream", "Failed to fetch")


class GoalBotError(Exception):
    """Base class for everything the bot raises on purpose."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class ProviderUnavailable(GoalBotError):
    """Schedule or play-by-play fetch failed (network, timeout, non-2xx)."""


class MalformedResponse(GoalBotError):
    """Provider answered, but not with the JSON shape we need."""


class MalformedPlay(GoalBotError):
    """A scoring play is missing the fields needed to build a Goal."""


class PublishFailure(GoalBotError):
    """Post was rejected or came back without a record uri."""


class LoginFailure(GoalBotError):
    """One failed authentication attempt against the publishing service."""


class FatalLoginError(GoalBotError):
    """Login attempts exhausted. The supervisor decides to exit."""


def is_upstream_error(exc: BaseException) -> bool:
    """
    True when the failure looks like the remote side (or the path to it)
    is down, rather than a problem with our request.
    """
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return True
    status = getattr(exc, "status", None)
    if status in UPSTREAM_STATUSES:
        return True
    cause = exc.__cause__
    if cause is not None and cause is not exc and is_upstream_error(cause):
        return True
    text = str(exc)
    return any(marker in text for marker in UPSTREAM_MARKERS)
