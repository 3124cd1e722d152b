"""Tagged step outcomes.

A step body returns a plain value on success. It may instead return
``Recovered`` (a fallback replaced a failed dependency, the step still
succeeds) or ``Fatal`` (the input can never succeed, do not retry).
Anything raised is a transient failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Recovered:
    value: Any
    reason: str


@dataclass(frozen=True, slots=True)
class Fatal:
    reason: str


class FatalStepError(Exception):
    """A step returned ``Fatal``; the delivery is dead-lettered without retries."""

    def __init__(self, step: str, reason: str) -> None:
        super().__init__(f"step '{step}' failed permanently: {reason}")
        self.step = step
        self.reason = reason


class StepTimeoutError(TimeoutError):
    """A step body ran longer than the configured step timeout."""


__all__ = ["Fatal", "FatalStepError", "Recovered", "StepTimeoutError"]
