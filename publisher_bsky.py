# publisher_bsky.py
# Bluesky posting through the atproto client.
#
# With BLUESKY_DRY_RUN set, nothing is sent: the post is logged and treated
# as a success so the rest of the bot (ledger, corrections) behaves normally.

from __future__ import annotations

import os
from typing import Any, Optional

from atproto import Client
from atproto_client.exceptions import AtProtocolError, NetworkError

from errors import LoginFailure, PublishFailure

BLUESKY_HANDLE: str = os.getenv("BLUESKY_HANDLE", "nhl-goal-bot.bsky.social")
BLUESKY_PASSWORD: Optional[str] = os.getenv("BLUESKY_PASSWORD")
BLUESKY_SERVICE: str = os.getenv("BLUESKY_SERVICE", "https://bsky.social").rstrip("/")
DRY_RUN: bool = os.getenv("BLUESKY_DRY_RUN", "0").lower() in ("1", "true", "yes")

# Anything the client can raise for a bad session, a bad reply or a dead link.
CLIENT_ERRORS = (AtProtocolError, ValueError)


def _log(msg: str) -> None:
    print(f"[BSKY] {msg}", flush=True)


def _status_of(e: Exception) -> Optional[int]:
    return getattr(getattr(e, "response", None), "status_code", None)


def _describe(e: Exception) -> str:
    # Network errors read as upstream failures to errors.is_upstream_error.
    if isinstance(e, NetworkError):
        return f"Failed to fetch: {e!r}"
    return str(e) or type(e).__name__


class BlueskyPublisher:
    def __init__(
        self,
        handle: str = BLUESKY_HANDLE,
        password: Optional[str] = BLUESKY_PASSWORD,
        service: str = BLUESKY_SERVICE,
        dry_run: bool = DRY_RUN,
        client: Optional[Any] = None,
    ) -> None:
        self.handle = handle
        self.password = password
        self.service = service.rstrip("/")
        self.dry_run = dry_run
        self.client = client if client is not None else Client(base_url=f"{self.service}/xrpc")
        self._session_ok = False

    @property
    def logged_in(self) -> bool:
        return self.dry_run or self._session_ok

    def login(self) -> None:
        """One authentication attempt. Raises LoginFailure."""
        if self.dry_run:
            _log("dry run: skipping login")
            return
        if not self.password:
            raise LoginFailure("BLUESKY_PASSWORD environment variable is required")
        self._session_ok = False
        try:
            self.client.login(self.handle, self.password)
        except CLIENT_ERRORS as e:
            raise LoginFailure(f"login rejected: {_describe(e)}", status=_status_of(e)) from e
        self._session_ok = True
        _log(f"logged in as {self.handle}")

    def _create_post(self, text: str) -> str:
        if not self.logged_in:
            raise PublishFailure("not logged in")
        try:
            resp = self.client.send_post(text=text)
        except CLIENT_ERRORS as e:
            raise PublishFailure(f"post rejected: {_describe(e)}", status=_status_of(e)) from e
        uri = getattr(resp, "uri", None)
        if not uri:
            raise PublishFailure("post response carried no uri")
        return uri

    def publish(self, text: str) -> bool:
        """
        Post `text`. On failure, log in again once and retry once.
        Returns True only when the service confirmed the new record.
        """
        if self.dry_run:
            _log("[DRY RUN] Would have posted:\n")
            print(text, flush=True)
            print("-" * 40, flush=True)
            return True

        try:
            uri = self._create_post(text)
            _log(f"posted {uri}")
            return True
        except PublishFailure as e:
            _log(f"publish failed ({e}); renewing session and retrying once")

        try:
            self.login()
            uri = self._create_post(text)
        except (LoginFailure, PublishFailure) as e:
            _log(f"publish retry failed: {e}")
            return False
        _log(f"posted {uri} after session renewal")
        return True
