"""Fixed-backoff retry policy shared by the fetch and mail call sites."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int
    backoff_seconds: float

    def call(
        self,
        fn: Callable[..., T],
        *args: object,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        sleep: Callable[[float], None] = time.sleep,
        **kwargs: object,
    ) -> T:
        """Run ``fn`` until it succeeds or the attempt budget is spent.

        The last exception is re-raised unchanged once attempts run out.
        Exceptions outside ``retry_on`` propagate on the first occurrence.
        """
        retrying = Retrying(
            stop=stop_after_attempt(max(1, self.max_attempts)),
            wait=wait_fixed(self.backoff_seconds),
            retry=retry_if_exception_type(retry_on),
            sleep=sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        return retrying(fn, *args, **kwargs)

    def _log_retry(self, state) -> None:
        exc = state.outcome.exception() if state.outcome else None
        logger.warning(
            "attempt %d/%d failed, retry after %ss. err='%s'",
            state.attempt_number,
            self.max_attempts,
            self.backoff_seconds,
            exc,
        )


NO_RETRY = RetryPolicy(max_attempts=1, backoff_seconds=0)
# one initial attempt plus three retries
COLLECTOR_FETCH = RetryPolicy(max_attempts=4, backoff_seconds=5)
WATCHER_MAIL = RetryPolicy(max_attempts=3, backoff_seconds=10)
