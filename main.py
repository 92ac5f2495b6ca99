# main.py
import os
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import nhl_adapter
from errors import (
    FatalLoginError,
    LoginFailure,
    MalformedResponse,
    ProviderUnavailable,
    is_upstream_error,
)
from game_day import GameDayClock
from goal_tracker import GameReport, GoalTracker, TrackerSettings
from health import start_health_server
from ledger import GoalLedger
from publisher_bsky import BlueskyPublisher
from retry import RetryPolicy

# ----------------------------------------------------------------------
# Config
# ----------------------------------------------------------------------

POLL_SECONDS: int = int(os.getenv("POLL_SECONDS", "60"))
PORT: int = int(os.getenv("PORT", "10000"))

LOGIN_MAX_ATTEMPTS: int = int(os.getenv("LOGIN_MAX_ATTEMPTS", "5"))
LOGIN_RETRY_SECONDS: float = float(os.getenv("LOGIN_RETRY_SECONDS", "30"))

UPSTREAM_FAILURES_BEFORE_RESTART: int = int(os.getenv("UPSTREAM_FAILURES_BEFORE_RESTART", "3"))
RESTART_COOLDOWN_SECONDS: float = float(os.getenv("RESTART_COOLDOWN_SECONDS", "60"))
MAX_RESTARTS: int = int(os.getenv("MAX_RESTARTS", "10"))

LOGIN_POLICY = RetryPolicy(
    max_attempts=LOGIN_MAX_ATTEMPTS,
    base_delay=LOGIN_RETRY_SECONDS,
    multiplier=1.5,
    upstream_multiplier=2.0,
)

# Fixed cool-down between full restarts.
RESTART_POLICY = RetryPolicy(
    max_attempts=MAX_RESTARTS,
    base_delay=RESTART_COOLDOWN_SECONDS,
    multiplier=1.0,
    upstream_multiplier=1.0,
)


@dataclass
class CycleResult:
    live_games: List[int] = field(default_factory=list)
    reports: List[GameReport] = field(default_factory=list)
    skipped: Dict[int, str] = field(default_factory=dict)
    pruned: List[str] = field(default_factory=list)


def poll_games(
    tracker: GoalTracker,
    fetch_live_ids: Callable[[], List[int]] = nhl_adapter.get_live_game_ids,
) -> CycleResult:
    """
    One poll cycle.

    Logic:
      - Clear the ledger if the calendar day rolled over.
      - Fetch live game ids. A failing schedule aborts the cycle (raises).
      - Run every live game through the tracker. A failing game is logged
        and skipped; the other games still run.
      - Sweep old goals out of the ledger, whatever happened above.
    """
    ledger = tracker.ledger
    result = CycleResult()
    ledger.roll_day()
    print(f"[LOOP] fetching NHL scores at {ledger.clock.now().isoformat()}", flush=True)

    try:
        result.live_games = fetch_live_ids()
        for game_id in result.live_games:
            try:
                result.reports.append(tracker.process_game(game_id))
            except MalformedResponse as ex:
                print(f"[ERROR] game {game_id}: malformed response, skipping this cycle: {ex}", flush=True)
                result.skipped[game_id] = "malformed_response"
            except ProviderUnavailable as ex:
                print(f"[ERROR] game {game_id}: provider unavailable: {ex}", flush=True)
                result.skipped[game_id] = "provider_unavailable"
            except Exception as ex:
                print(f"[ERROR] exception while processing game {game_id}: {ex}", flush=True)
                result.skipped[game_id] = "error"
    finally:
        result.pruned = ledger.prune()

    return result


def run_bot(
    publisher: Any,
    *,
    clock: Optional[GameDayClock] = None,
    settings: Optional[TrackerSettings] = None,
    fetch_live_ids: Callable[[], List[int]] = nhl_adapter.get_live_game_ids,
    fetch_play_by_play: Callable[[int], Dict[str, Any]] = nhl_adapter.fetch_play_by_play,
    sleep: Callable[[float], None] = time.sleep,
    max_cycles: Optional[int] = None,
) -> None:
    """
    Log in, then poll until something forces a restart.

    The ledger lives for the whole run, so a restart only logs in again and
    goals already announced stay announced. Repeated upstream failures
    restart the bot after a fixed cool-down. Raises FatalLoginError when login
    attempts run out and ProviderUnavailable when restarts run out.
    `max_cycles` bounds the total number of poll cycles (for tests).
    """
    ledger = GoalLedger(clock)
    tracker = GoalTracker(ledger, publisher.publish, fetch_play_by_play, settings=settings, sleep=sleep)
    restarts = 0
    cycles = 0

    while True:
        try:
            LOGIN_POLICY.call(publisher.login, label="Bluesky login", sleep=sleep)
        except LoginFailure as e:
            raise FatalLoginError(f"Max login attempts reached: {e}", status=e.status) from e
        print("[RUN] bot successfully logged in", flush=True)

        upstream_failures = 0
        try:
            while max_cycles is None or cycles < max_cycles:
                cycles += 1
                try:
                    poll_games(tracker, fetch_live_ids)
                    upstream_failures = 0
                    restarts = 0
                except ProviderUnavailable as ex:
                    print(f"[ERROR] error in poll cycle: {ex}", flush=True)
                    if is_upstream_error(ex):
                        upstream_failures += 1
                        if upstream_failures >= UPSTREAM_FAILURES_BEFORE_RESTART:
                            raise
                except MalformedResponse as ex:
                    print(f"[ERROR] unreadable schedule, skipping this cycle: {ex}", flush=True)
                except Exception as ex:
                    print(f"[ERROR] exception in poll cycle: {ex}", flush=True)

                sleep(POLL_SECONDS)
            return
        except ProviderUnavailable as ex:
            restarts += 1
            if RESTART_POLICY.exhausted(restarts):
                raise
            wait = RESTART_POLICY.delay_for(restarts, ex)
            print(f"[RUN] connection issue detected, restarting bot in {wait:.0f} seconds", flush=True)
            sleep(wait)


def run() -> None:
    print("[RUN] starting NHL goal bot", flush=True)
    publisher = BlueskyPublisher()
    if not publisher.dry_run and not publisher.password:
        print("[FATAL] BLUESKY_PASSWORD environment variable is required", flush=True)
        raise SystemExit(1)

    start_health_server(PORT)

    try:
        run_bot(publisher)
    except FatalLoginError as ex:
        print(f"[FATAL] {ex}; exiting so the host can restart us", flush=True)
        raise SystemExit(1)
    except ProviderUnavailable as ex:
        print(f"[FATAL] provider still unreachable after {MAX_RESTARTS} restarts: {ex}", flush=True)
        raise SystemExit(1)


if __name__ == "__main__":
    run()
