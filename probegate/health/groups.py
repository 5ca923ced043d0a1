"""Health groups: named subsets of the registry with a visibility policy."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import ConfigError, GroupNotFoundError, NotFoundError
from .models import CheckResult
from .registry import CheckRegistry

logger = logging.getLogger(__name__)

WILDCARD = "*"


class ShowDetails(str, Enum):
    ALWAYS = "always"
    NEVER = "never"
    WHEN_AUTHORIZED = "when_authorized"

    @classmethod
    def parse(cls, value: str | ShowDetails) -> ShowDetails:
        if isinstance(value, ShowDetails):
            return value
        try:
            return cls(str(value).strip().lower().replace("-", "_"))
        except ValueError:
            raise ConfigError(f"Invalid show_details value: {value!r}") from None


class Visibility(str, Enum):
    SHOW = "show"
    HIDE = "hide"


@dataclass(frozen=True)
class CallerContext:
    """What the boundary layer decided about the caller."""

    authorized: bool = False


ANONYMOUS = CallerContext()


@dataclass(frozen=True)
class Group:
    """A probe endpoint: which checks it covers and who sees the details."""

    name: str
    include: tuple[str, ...] = (WILDCARD,)
    exclude: frozenset[str] = field(default_factory=frozenset)
    show_details: ShowDetails = ShowDetails.NEVER
    timeout_seconds: float | None = None

    @property
    def includes_all(self) -> bool:
        return WILDCARD in self.include

    def visibility(self, context: CallerContext) -> Visibility:
        if self.show_details is ShowDetails.ALWAYS:
            return Visibility.SHOW
        if self.show_details is ShowDetails.WHEN_AUTHORIZED and context.authorized:
            return Visibility.SHOW
        return Visibility.HIDE


def make_group(
    name: str,
    include: str | Iterable[str] = WILDCARD,
    show_details: str | ShowDetails = ShowDetails.NEVER,
    exclude: Iterable[str] = (),
    timeout_seconds: float | None = None,
) -> Group:
    """Normalise loosely typed group settings into a ``Group``."""
    if not name:
        raise ConfigError("Group name is required")
    if isinstance(include, str):
        include = (include,)
    members = tuple(dict.fromkeys(include))  # de-duplicate, keep order
    return Group(
        name=name,
        include=members,
        exclude=frozenset(exclude),
        show_details=ShowDetails.parse(show_details),
        timeout_seconds=timeout_seconds,
    )


class GroupManager:
    """Resolves group membership against the registry. Groups are fixed at startup."""

    def __init__(self, registry: CheckRegistry, groups: Iterable[Group] = ()) -> None:
        self._registry = registry
        self._groups: dict[str, Group] = {}
        for group in groups:
            if group.name in self._groups:
                raise ConfigError(f"Duplicate health group: {group.name}")
            self._groups[group.name] = group
        self._check_members()

    def _check_members(self) -> None:
        known = set(self._registry.names())
        for group in self._groups.values():
            if group.includes_all:
                continue
            unknown = [m for m in group.include if m not in known]
            if unknown:
                raise ConfigError(
                    f"Group '{group.name}' includes unregistered checks: {', '.join(unknown)}"
                )

    def get(self, name: str) -> Group:
        try:
            return self._groups[name]
        except KeyError:
            raise GroupNotFoundError(name) from None

    def names(self) -> list[str]:
        return sorted(self._groups)

    def resolve(self, name: str) -> list[tuple[str, Any]]:
        """Member ``(name, check)`` pairs of a group.

        ``*`` expands to the whole registry (sorted by name); explicit members
        keep their configured order. An explicit member unregistered after
        startup resolves to a check that reports DOWN.
        """
        group = self.get(name)
        return self.resolve_group(group)

    def resolve_group(self, group: Group) -> list[tuple[str, Any]]:
        checks = self._registry.snapshot()
        if group.includes_all:
            members = sorted(checks)
        else:
            members = list(group.include)

        resolved = []
        for member in members:
            if member in group.exclude:
                continue
            check = checks.get(member)
            if check is None:
                logger.warning("Group '%s' references unknown check '%s'", group.name, member)
                check = UnregisteredCheck(member)
            resolved.append((member, check))
        return resolved

    def visibility_for(self, name: str, context: CallerContext | None = None) -> Visibility:
        return self.get(name).visibility(context or ANONYMOUS)


class UnregisteredCheck:
    """Stands in for a group member that is no longer in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name

    async def evaluate(self) -> CheckResult:
        raise NotFoundError(self.name)
