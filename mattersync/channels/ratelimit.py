# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Retry policy for throttled API calls.

Every remote call made by the channel cache goes through
:meth:`RateLimitRetrier.invoke`.  A throttled response (HTTP 429) is
retried after the wait the server asks for, with no limit on the number
of attempts: the quota frees up eventually.  Any other failure is fatal
for the operation and is raised to the caller unchanged.

Callers that need a deadline pass a ``threading.Event``; a pending
backoff wakes up immediately and the call ends with
:class:`RetryCancelled`.  :meth:`RateLimitRetrier.cancel_pending` does
the same for every call in progress without affecting later ones.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import TypeVar

from mattersync.api.client import ApiResponse, MattermostApiError


logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryState(Enum):
    """States of a single :meth:`RateLimitRetrier.invoke` call."""

    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    SUCCEEDED = "succeeded"
    FAILED_FATAL = "failed_fatal"
    CANCELLED = "cancelled"


class RetryCancelled(Exception):
    """Raised when the cancellation event is set during a retry loop.

    Attributes:
        operation: Name of the cancelled operation.
        attempts: Number of calls made before cancellation.
    """

    def __init__(self, operation: str, attempts: int) -> None:
        super().__init__(f"{operation} cancelled after {attempts} attempt(s)")
        self.operation = operation
        self.attempts = attempts


class RateLimitRetrier:
    """Runs remote calls, sleeping and retrying while throttled.

    Args:
        max_backoff: Cap in seconds for a single wait.
        default_backoff: Wait in seconds when a throttled response has no
            usable ``Retry-After`` / ``X-RateLimit-Reset`` header.
        cancel: Initial shared cancellation event.  Calls without their
            own event use the shared one that is current when they start.
        sleep: Replacement for the backoff wait, called with the number
            of seconds.  Defaults to waiting on the cancellation event.
    """

    def __init__(
        self,
        *,
        max_backoff: float = 60.0,
        default_backoff: float = 1.0,
        cancel: threading.Event | None = None,
        sleep: Callable[[float], object] | None = None,
    ) -> None:
        self._max_backoff = max_backoff
        self._default_backoff = default_backoff
        self._cancel = cancel if cancel is not None else threading.Event()
        self._sleep = sleep
        self._lock = threading.Lock()

    @property
    def cancel_event(self) -> threading.Event:
        """The shared event used by calls started from now on."""
        with self._lock:
            return self._cancel

    def cancel_pending(self) -> None:
        """Abort every call currently using the shared event.

        The shared event is replaced first, so calls started afterwards
        run normally.
        """
        with self._lock:
            event, self._cancel = self._cancel, threading.Event()
        event.set()

    def invoke(
        self,
        operation: str,
        call: Callable[[], T],
        *,
        cancel: threading.Event | None = None,
    ) -> T:
        """Run ``call`` until it succeeds or fails for a non-throttle reason.

        Args:
            operation: Name used in log messages.
            call: Zero-argument callable performing one remote call.
            cancel: Per-call cancellation event; defaults to the
                current shared event.

        Returns:
            Whatever ``call`` returns.

        Raises:
            MattermostApiError: Any non-429 API error, unchanged.
            RetryCancelled: If cancellation was requested.
            Exception: Anything else ``call`` raises, unchanged.
        """
        cancel = cancel if cancel is not None else self.cancel_event
        state = RetryState.ATTEMPTING
        attempts = 0
        wait = 0.0

        while True:
            if state is RetryState.ATTEMPTING:
                if cancel.is_set():
                    state = RetryState.CANCELLED
                    continue
                attempts += 1
                try:
                    result = call()
                except Exception as e:
                    if (
                        isinstance(e, MattermostApiError)
                        and e.response.is_rate_limited
                    ):
                        wait = self.backoff_for(e.response)
                        state = RetryState.BACKOFF
                        continue
                    state = RetryState.FAILED_FATAL
                    logger.debug(
                        "%s failed (%s) after %d attempt(s): %s",
                        operation,
                        state.value,
                        attempts,
                        e,
                    )
                    raise
                state = RetryState.SUCCEEDED
                if attempts > 1:
                    logger.info(
                        "%s succeeded after %d attempts", operation, attempts
                    )
                return result

            if state is RetryState.BACKOFF:
                logger.warning(
                    "Rate limited on %s, retrying in %.1fs (attempt %d)",
                    operation,
                    wait,
                    attempts,
                )
                self._wait(wait, cancel)
                state = (
                    RetryState.CANCELLED
                    if cancel.is_set()
                    else RetryState.ATTEMPTING
                )
                continue

            logger.warning(
                "%s cancelled after %d attempt(s)", operation, attempts
            )
            raise RetryCancelled(operation, attempts)

    def backoff_for(self, response: ApiResponse) -> float:
        """Return the wait in seconds for a throttled response."""
        hint = response.retry_after
        if hint is None:
            return self._default_backoff
        return min(hint, self._max_backoff)

    def _wait(self, seconds: float, cancel: threading.Event) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
        else:
            cancel.wait(seconds)
