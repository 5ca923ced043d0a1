"""Built-in health checks.

A check is any object with ``evaluate() -> CheckResult``, either a plain
method (run on the evaluator's thread pool) or a coroutine method. The engine
treats checks as opaque; everything here is a convenience, not a requirement.

Supports: ping, warm-up, callable wrapper, HTTP(S), TCP connect, TTL cache.
"""

from __future__ import annotations

import inspect
import logging
import socket
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

import httpx

from .errors import ConfigError
from .evaluator import DEFAULT_TIMEOUT_SECONDS
from .models import CheckResult, Status

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@runtime_checkable
class Check(Protocol):
    """Anything the evaluator can run."""

    def evaluate(self) -> Any:
        ...


class HealthCheck(ABC):
    """Convenience base class; ``timeout_seconds`` overrides the default deadline."""

    timeout_seconds: float | None = None

    @abstractmethod
    def evaluate(self) -> CheckResult:
        ...


# ── Self checks ──────────────────────────────────────────────────────────────


class PingCheck(HealthCheck):
    """Always UP: the process answered, which is all a liveness probe needs."""

    def evaluate(self) -> CheckResult:
        return CheckResult.up()


class WarmupCheck(HealthCheck):
    """DOWN until ``delay_seconds`` have elapsed since creation, then UP.

    Simulates a dependency (such as a database) that takes a while to
    initialise.
    """

    def __init__(self, delay_seconds: float = 30.0, clock: Clock = time.monotonic) -> None:
        self.delay_seconds = delay_seconds
        self._clock = clock
        self._created = clock()

    def evaluate(self) -> CheckResult:
        elapsed = self._clock() - self._created
        ready = elapsed > self.delay_seconds
        logger.debug("Warm-up check: %s (%.1fs elapsed)", "UP" if ready else "DOWN", elapsed)
        if ready:
            return CheckResult.up()
        return CheckResult.down(remaining_seconds=round(self.delay_seconds - elapsed, 1))


class FunctionCheck(HealthCheck):
    """Wraps a callable returning a CheckResult, a Status or a bool."""

    def __init__(self, fn: Callable[[], Any], timeout_seconds: float | None = None) -> None:
        self._fn = fn
        self.timeout_seconds = timeout_seconds
        if inspect.iscoroutinefunction(fn):
            self.evaluate = self._evaluate_async  # type: ignore[method-assign]

    def evaluate(self) -> CheckResult:
        return _coerce(self._fn())

    async def _evaluate_async(self) -> CheckResult:
        return _coerce(await self._fn())


def _coerce(value: Any) -> CheckResult:
    if isinstance(value, CheckResult):
        return value
    if isinstance(value, bool):
        return CheckResult.up() if value else CheckResult.down()
    if isinstance(value, Status):
        return CheckResult(name="", status=value)
    raise TypeError(f"Unsupported health value: {value!r}")


# ── Dependency checks ────────────────────────────────────────────────────────


class HttpCheck(HealthCheck):
    """HTTP(S) check: UP when the response carries the expected status code."""

    def __init__(
        self,
        url: str,
        method: str = "GET",
        expected_status: int = 200,
        timeout_seconds: float | None = None,
    ) -> None:
        self.url = url
        self.method = method
        self.expected_status = expected_status
        self.timeout_seconds = timeout_seconds

    def evaluate(self) -> CheckResult:
        t0 = time.perf_counter()
        timeout = self.timeout_seconds or DEFAULT_TIMEOUT_SECONDS
        with httpx.Client(timeout=timeout, follow_redirects=True) as client:
            resp = client.request(self.method, self.url)
        latency = round((time.perf_counter() - t0) * 1000, 1)

        if resp.status_code == self.expected_status:
            return CheckResult.up(status_code=resp.status_code, latency_ms=latency)
        return CheckResult.down(
            status_code=resp.status_code,
            latency_ms=latency,
            message=f"Expected {self.expected_status}, got {resp.status_code}",
        )


class TcpCheck(HealthCheck):
    """Raw TCP port connectivity check."""

    def __init__(self, hostname: str, port: int, timeout_seconds: float | None = None) -> None:
        self.hostname = hostname
        self.port = port
        self.timeout_seconds = timeout_seconds

    def evaluate(self) -> CheckResult:
        t0 = time.perf_counter()
        timeout = self.timeout_seconds or DEFAULT_TIMEOUT_SECONDS
        sock = socket.create_connection((self.hostname, self.port), timeout=timeout)
        sock.close()
        latency = round((time.perf_counter() - t0) * 1000, 1)
        return CheckResult.up(port=self.port, latency_ms=latency)


# ── Caching ──────────────────────────────────────────────────────────────────


class CachedCheck(HealthCheck):
    """Reuses the wrapped check's last UP result for ``ttl_seconds``.

    Only blocking checks are supported; the cache is shared across queries.
    Anything other than UP is returned but not cached.
    """

    def __init__(self, check: Check, ttl_seconds: float, clock: Clock = time.monotonic) -> None:
        if inspect.iscoroutinefunction(check.evaluate):
            raise TypeError("CachedCheck wraps blocking checks only")
        self._check = check
        self.ttl_seconds = ttl_seconds
        self.timeout_seconds = getattr(check, "timeout_seconds", None)
        self._clock = clock
        self._lock = threading.Lock()
        self._cached: CheckResult | None = None
        self._cached_at = 0.0

    def evaluate(self) -> CheckResult:
        with self._lock:
            now = self._clock()
            if self._cached is not None and now - self._cached_at < self.ttl_seconds:
                return self._cached
        result = self._check.evaluate()
        if result.status is not Status.UP:
            return result
        with self._lock:
            self._cached = result
            self._cached_at = self._clock()
        return result

    def invalidate(self) -> None:
        with self._lock:
            self._cached = None


# ── Declarative construction ─────────────────────────────────────────────────


def _timeout(c: dict[str, Any]) -> float | None:
    value = c.get("timeout_seconds")
    return float(value) if value is not None else None


CHECK_TYPES: dict[str, Callable[[dict[str, Any]], HealthCheck]] = {
    "ping": lambda c: PingCheck(),
    "warmup": lambda c: WarmupCheck(float(c.get("delay_seconds", 30))),
    "http": lambda c: HttpCheck(
        c["url"], c.get("method", "GET"), int(c.get("expected_status", 200)), _timeout(c),
    ),
    "tcp": lambda c: TcpCheck(c["hostname"], int(c["port"]), _timeout(c)),
}


def build_check(raw: dict[str, Any]) -> HealthCheck:
    """Build a check from one entry of the ``checks:`` config section."""
    check_type = raw.get("type", "ping")
    factory = CHECK_TYPES.get(check_type)
    if factory is None:
        raise ConfigError(f"Unknown check type: {check_type}")
    try:
        check = factory(raw)
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid '{check_type}' check {raw.get('name', '?')}: {e}") from e

    ttl = raw.get("cache_ttl_seconds")
    if ttl:
        return CachedCheck(check, float(ttl))
    return check
