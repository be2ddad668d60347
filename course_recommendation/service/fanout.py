from __future__ import annotations

import logging
import time
from concurrent.futures import Executor, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..errors import DeadlineExceeded

logger = logging.getLogger(__name__)


class Deadline:
    """
    Request-scoped time budget. `seconds=None` means no deadline.
    Checked between pipeline stages; sub-query waits are capped by it.
    """

    def __init__(self, seconds: Optional[float], clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(self._expires_at - self._clock(), 0.0)

    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def check(self, stage: str) -> None:
        if self.expired():
            raise DeadlineExceeded(f"deadline exceeded before {stage}")

    def cap(self, timeout: Optional[float]) -> Optional[float]:
        """The smaller of `timeout` and the time left."""
        remaining = self.remaining()
        if remaining is None:
            return timeout
        if timeout is None:
            return remaining
        return min(timeout, remaining)


@dataclass
class BranchResult:
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def fan_out(
    tasks: Dict[str, Callable[[], Any]],
    timeout: Optional[float] = None,
    executor: Optional[Executor] = None,
) -> Dict[str, BranchResult]:
    """
    Run independent callables concurrently and join them all.

    Every branch settles on its own: a raised exception or a timeout is
    captured in that branch's BranchResult and never cancels its siblings.
    Without an executor a short-lived pool sized to the task count is used.
    """
    own_pool = executor is None
    pool = executor or ThreadPoolExecutor(
        max_workers=max(len(tasks), 1), thread_name_prefix="reco-fanout"
    )
    try:
        futures = {name: pool.submit(fn) for name, fn in tasks.items()}
        wait(list(futures.values()), timeout=timeout)

        results: Dict[str, BranchResult] = {}
        for name, future in futures.items():
            if not future.done():
                future.cancel()
                results[name] = BranchResult(
                    error=DeadlineExceeded(f"{name} did not finish within {timeout}s")
                )
                continue
            error = future.exception()
            if error is not None:
                results[name] = BranchResult(error=error)
            else:
                results[name] = BranchResult(value=future.result())
        return results
    finally:
        if own_pool:
            # timed-out branches keep running in the background; do not block on them
            pool.shutdown(wait=False)
