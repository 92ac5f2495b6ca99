# retry.py
# Bounded retry with growing backoff. Upstream-looking failures wait longer.

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

from errors import is_upstream_error

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 5
    base_delay: float = 30.0
    multiplier: float = 1.5
    upstream_multiplier: float = 2.0
    max_delay: float = 600.0
    is_upstream: Callable[[BaseException], bool] = field(default=is_upstream_error)

    def delay_for(self, attempt: int, exc: Optional[BaseException] = None) -> float:
        """Seconds to wait after failed attempt number `attempt` (1-based)."""
        delay = self.base_delay * (self.multiplier ** max(0, attempt - 1))
        if exc is not None and self.is_upstream(exc):
            delay *= self.upstream_multiplier
        return min(self.max_delay, delay)

    def exhausted(self, attempt: int) -> bool:
        return attempt >= self.max_attempts

    def call(
        self,
        fn: Callable[[], T],
        *,
        label: str = "call",
        sleep: Callable[[float], None] = time.sleep,
    ) -> T:
        """
        Run `fn` until it returns, sleeping between failures.

        The last exception is re-raised once `max_attempts` is reached.
        """
        attempt = 1
        while True:
            try:
                print(f"[RETRY] {label} (attempt {attempt}/{self.max_attempts})", flush=True)
                return fn()
            except Exception as e:
                upstream = self.is_upstream(e)
                print(
                    f"[RETRY] {label} attempt {attempt} failed: {e} "
                    f"(status={getattr(e, 'status', None)}, upstream={upstream})",
                    flush=True,
                )
                if self.exhausted(attempt):
                    raise
                wait = self.delay_for(attempt, e)
                print(f"[RETRY] waiting {wait:.0f} seconds before retrying...", flush=True)
                sleep(wait)
                attempt += 1
