"""Health engine: the query interface behind every probe endpoint.

  query(group, caller) : resolve → evaluate → aggregate → (http code, result)
  query_root(caller)   : same over every registered check

Every query re-evaluates from scratch; nothing is persisted between calls.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .evaluator import DEFAULT_TIMEOUT_SECONDS, Evaluator
from .groups import (
    ANONYMOUS,
    WILDCARD,
    CallerContext,
    Group,
    GroupManager,
    ShowDetails,
    Visibility,
    make_group,
)
from .models import AggregateResult, CheckResult, Status, aggregate
from .registry import CheckRegistry

logger = logging.getLogger(__name__)

ROOT_GROUP = ""


class StatusCodeMapping:
    """Maps an aggregate status to an HTTP code: UP → 200, anything else → 503."""

    DEFAULTS = {
        Status.UP: 200,
        Status.UNKNOWN: 503,
        Status.OUT_OF_SERVICE: 503,
        Status.DOWN: 503,
    }

    def __init__(self, overrides: Mapping[str | Status, int] | None = None) -> None:
        self._codes = dict(self.DEFAULTS)
        for status, code in (overrides or {}).items():
            self._codes[Status.parse(status)] = int(code)

    def code_for(self, status: Status) -> int:
        return self._codes[status]

    def to_dict(self) -> dict[str, int]:
        return {s.value: c for s, c in self._codes.items()}


class HealthEngine:
    """Evaluates health groups on demand."""

    def __init__(
        self,
        registry: CheckRegistry,
        groups: GroupManager,
        evaluator: Evaluator,
        status_codes: StatusCodeMapping | None = None,
        root_show_details: ShowDetails = ShowDetails.NEVER,
    ) -> None:
        self.registry = registry
        self.groups = groups
        self.evaluator = evaluator
        self.status_codes = status_codes or StatusCodeMapping()
        self._root = Group(name=ROOT_GROUP, include=(WILDCARD,), show_details=root_show_details)

    async def query(
        self, group_name: str, caller: CallerContext | None = None,
    ) -> tuple[int, AggregateResult]:
        """Evaluate a configured group. Raises ``GroupNotFoundError``."""
        group = self.groups.get(group_name)
        return await self._query_group(group, caller or ANONYMOUS)

    async def query_root(self, caller: CallerContext | None = None) -> tuple[int, AggregateResult]:
        """Evaluate every registered check."""
        return await self._query_group(self._root, caller or ANONYMOUS)

    def group_names(self) -> list[str]:
        return self.groups.names()

    async def _query_group(
        self, group: Group, caller: CallerContext,
    ) -> tuple[int, AggregateResult]:
        members = self.groups.resolve_group(group)
        results = await self.evaluator.evaluate_all(members, group.timeout_seconds)
        status = aggregate(results.values())
        code = self.status_codes.code_for(status)

        components: dict[str, CheckResult] | None = None
        if group.visibility(caller) is Visibility.SHOW:
            components = dict(results)

        logger.debug(
            "Group %s: %s (%d checks) → %d", group.name or "<root>", status.value, len(results), code,
        )
        return code, AggregateResult(status=status, components=components)

    def close(self) -> None:
        self.evaluator.close()


class HealthEngineBuilder:
    """Explicit startup wiring: register checks, declare groups, build."""

    def __init__(self) -> None:
        self._registry = CheckRegistry()
        self._groups: list[Group] = []
        self._timeout = DEFAULT_TIMEOUT_SECONDS
        self._parallel = True
        self._max_workers = 8
        self._codes: dict[str | Status, int] = {}
        self._root_show_details = ShowDetails.NEVER

    def register(self, name: str, check: Any) -> HealthEngineBuilder:
        self._registry.register(name, check)
        return self

    def group(
        self,
        name: str,
        include: str | Iterable[str] = WILDCARD,
        show_details: str | ShowDetails = ShowDetails.NEVER,
        exclude: Iterable[str] = (),
        timeout_seconds: float | None = None,
    ) -> HealthEngineBuilder:
        self._groups.append(make_group(name, include, show_details, exclude, timeout_seconds))
        return self

    def timeouts(self, check_seconds: float, parallel: bool = True, max_workers: int = 8) -> HealthEngineBuilder:
        self._timeout = check_seconds
        self._parallel = parallel
        self._max_workers = max_workers
        return self

    def http_mapping(self, overrides: Mapping[str | Status, int]) -> HealthEngineBuilder:
        self._codes.update(overrides)
        return self

    def root_details(self, show_details: str | ShowDetails) -> HealthEngineBuilder:
        self._root_show_details = ShowDetails.parse(show_details)
        return self

    def build(self) -> HealthEngine:
        engine = HealthEngine(
            registry=self._registry,
            groups=GroupManager(self._registry, self._groups),
            evaluator=Evaluator(self._timeout, self._parallel, self._max_workers),
            status_codes=StatusCodeMapping(self._codes),
            root_show_details=self._root_show_details,
        )
        logger.info(
            "Health engine ready: %d checks, groups=%s",
            len(self._registry),
            ", ".join(engine.group_names()) or "none",
        )
        return engine
