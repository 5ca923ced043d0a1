"""Check registry: the process-wide set of named health checks.

Reads are lock-free: every mutation publishes a fresh dict, so a reader holding
a snapshot sees the registry either before or after a change, never halfway.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from .errors import DuplicateNameError, NotFoundError

logger = logging.getLogger(__name__)


class CheckRegistry:
    """Named health checks, unique by name."""

    def __init__(self) -> None:
        self._checks: dict[str, Any] = {}
        self._lock = threading.Lock()

    def register(self, name: str, check: Any) -> None:
        """Add a check. Raises ``DuplicateNameError`` if ``name`` is taken."""
        if not name:
            raise ValueError("Health check name is required")
        if not callable(getattr(check, "evaluate", None)):
            raise TypeError(f"Health check '{name}' has no evaluate() method")

        with self._lock:
            if name in self._checks:
                raise DuplicateNameError(name)
            checks = dict(self._checks)
            checks[name] = check
            self._checks = checks
        logger.info("Registered health check '%s' (%s)", name, type(check).__name__)

    def unregister(self, name: str) -> None:
        """Administrative removal. Raises ``NotFoundError`` if absent."""
        with self._lock:
            if name not in self._checks:
                raise NotFoundError(name)
            checks = dict(self._checks)
            del checks[name]
            self._checks = checks
        logger.info("Unregistered health check '%s'", name)

    def get(self, name: str) -> Any:
        try:
            return self._checks[name]
        except KeyError:
            raise NotFoundError(name) from None

    def all(self) -> list[tuple[str, Any]]:
        """Snapshot of ``(name, check)`` pairs, sorted by name."""
        return sorted(self._checks.items(), key=lambda item: item[0])

    def snapshot(self) -> Mapping[str, Any]:
        """Read-only view of the registry as published right now."""
        return MappingProxyType(self._checks)

    def names(self) -> list[str]:
        return sorted(self._checks)

    def __contains__(self, name: object) -> bool:
        return name in self._checks

    def __len__(self) -> int:
        return len(self._checks)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())
