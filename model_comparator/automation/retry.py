# model_comparator/automation/retry.py
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from ..shared.errors import StepFailedError
from ..shared.schemas import RetryAttempt
from .context import RunContext

LOG = logging.getLogger("model_comparator.retry")

DEFAULT_MAX_ATTEMPTS = 3


class StepRetryController:
    """
    Bounded retry for one fallible UI step, with a human in the loop.

    A step fails by returning a falsy value or by raising. Between attempts the
    operator is asked to fix the page, then `reset` restores a clean context.
    A reset that returns False or raises leaves the page unusable, so the next
    attempt counts as failed without running the step.
    After `max_attempts` failures a StepFailedError is raised for the caller
    to turn into a failed task outcome.
    """

    def __init__(self, ctx: RunContext, reset: Optional[Callable[[], Any]] = None, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.ctx = ctx
        self.reset = reset
        self.max_attempts = max_attempts

    def _run_reset(self, reset: Optional[Callable[[], Any]], label: str) -> bool:
        if reset is None:
            return True
        try:
            ok = reset()
        except Exception as e:
            LOG.warning("%s: reset raised %s: %s", label, type(e).__name__, e)
            return False
        if ok is False:
            LOG.warning("%s: reset could not restore the page", label)
            return False
        return True

    def with_retry(
        self,
        step: Callable[[], Any],
        label: str,
        max_attempts: Optional[int] = None,
        reset: Optional[Callable[[], Any]] = None,
    ) -> Any:
        """`reset` overrides the controller-wide reset for this call."""
        limit = max_attempts or self.max_attempts
        reset = reset or self.reset
        ready = True
        for n in range(1, limit + 1):
            attempt = RetryAttempt(attempt_number=n, max_attempts=limit)
            LOG.info("%s: attempt %s", label, attempt)
            result = None
            if not ready:
                LOG.warning("%s: attempt %s skipped, reset failed", label, attempt)
            else:
                try:
                    result = step()
                except Exception as e:
                    LOG.warning("%s: attempt %s raised %s: %s", label, attempt, type(e).__name__, e)
            if result:
                return result

            if attempt.exhausted:
                LOG.error("%s: giving up after %d attempts", label, limit)
                raise StepFailedError(label, limit)

            LOG.warning("%s failed (attempt %s). Check the browser (login state, page state).", label, attempt)
            self.ctx.ask_operator(f"Fix the issue, then press Enter to retry ({attempt})...")

            ready = self._run_reset(reset, label)
            self.ctx.pause(self.ctx.timings.action_delay_s)

        # unreachable: the loop either returns or raises
        raise StepFailedError(label, limit)
