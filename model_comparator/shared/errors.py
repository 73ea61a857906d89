# model_comparator/shared/errors.py
from __future__ import annotations


class ComparatorError(Exception):
    pass


class ConfigError(ComparatorError):
    """Input files, credentials or run config are missing or invalid."""


class AuthenticationError(ComparatorError):
    """No authenticated session after auto login and manual fallback. Aborts the run."""


class StepFailedError(ComparatorError):
    """A retried step ran out of attempts. Scoped to one task."""

    def __init__(self, step: str, attempts: int):
        super().__init__(f"{step} failed {attempts} times; skipping")
        self.step = step
        self.attempts = attempts
