"""Health engine error taxonomy.

Timeout and evaluation errors never escape the evaluator; they travel on a
DOWN ``CheckResult.error``. The rest signal misconfiguration and propagate.
"""

from __future__ import annotations


class HealthError(Exception):
    """Base class for all health engine errors."""


class DuplicateNameError(HealthError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Health check already registered: {name}")
        self.name = name


class NotFoundError(HealthError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Health check not found: {name}")
        self.name = name


class GroupNotFoundError(HealthError):
    def __init__(self, group: str) -> None:
        super().__init__(f"Health group not found: {group}")
        self.group = group


class CheckTimeoutError(HealthError, TimeoutError):
    """A check did not finish before its deadline."""

    def __init__(self, name: str, timeout: float) -> None:
        super().__init__(f"Health check '{name}' timed out after {timeout:g}s")
        self.check_name = name
        self.timeout = timeout


class CheckEvaluationError(HealthError):
    """Wraps whatever a check raised (available as ``__cause__``)."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Health check '{name}' failed: {reason}")
        self.check_name = name


class ConfigError(HealthError):
    """Malformed checks/groups configuration."""
