"""Health models: status lattice, per-check results and the aggregate.

Status severity (worst wins):
  UP < UNKNOWN < OUT_OF_SERVICE < DOWN

An empty member set aggregates to UP.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any


# ── Status ───────────────────────────────────────────────────────────────────


class Status(str, Enum):
    UP = "UP"
    UNKNOWN = "UNKNOWN"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"
    DOWN = "DOWN"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @classmethod
    def parse(cls, value: str | Status) -> Status:
        """Accept ``up``, ``UP``, ``out-of-service`` etc."""
        if isinstance(value, Status):
            return value
        return cls(str(value).strip().upper().replace("-", "_"))


_SEVERITY = {
    Status.UP: 0,
    Status.UNKNOWN: 1,
    Status.OUT_OF_SERVICE: 2,
    Status.DOWN: 3,
}


# ── Results ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CheckResult:
    """Outcome of evaluating one check. Immutable once built."""

    name: str
    status: Status
    details: Mapping[str, Any] = field(default_factory=dict)
    error: BaseException | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    @classmethod
    def up(cls, name: str = "", **details: Any) -> CheckResult:
        return cls(name=name, status=Status.UP, details=details)

    @classmethod
    def down(cls, name: str = "", error: BaseException | None = None, **details: Any) -> CheckResult:
        return cls(name=name, status=Status.DOWN, details=details, error=error)

    @classmethod
    def unknown(cls, name: str = "", **details: Any) -> CheckResult:
        return cls(name=name, status=Status.UNKNOWN, details=details)

    @classmethod
    def out_of_service(cls, name: str = "", **details: Any) -> CheckResult:
        return cls(name=name, status=Status.OUT_OF_SERVICE, details=details)

    def to_dict(self, include_details: bool = True) -> dict[str, Any]:
        """Render as a component entry of the JSON body."""
        data: dict[str, Any] = {"status": self.status.value}
        if not include_details:
            return data
        details = dict(self.details)
        if self.error is not None:
            details["error"] = _describe_error(self.error)
        if details:
            data["details"] = details
        return data


@dataclass(frozen=True)
class AggregateResult:
    """Combined status of a group; ``components`` is None when hidden."""

    status: Status
    components: Mapping[str, CheckResult] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status.value}
        if self.components is not None:
            data["components"] = {
                name: result.to_dict() for name, result in self.components.items()
            }
        return data


def aggregate(results: Iterable[CheckResult]) -> Status:
    """Combine member results: the most severe status wins, UP if empty."""
    return max((r.status for r in results), key=_SEVERITY.__getitem__, default=Status.UP)


def _describe_error(error: BaseException) -> str:
    cause = error.__cause__ or error
    message = str(cause)
    if not message:
        return type(cause).__name__
    return f"{type(cause).__name__}: {message}"
