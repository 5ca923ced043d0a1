"""Evaluator: runs checks under a deadline and turns failures into DOWN.

Blocking checks run in a thread pool so they never stall the event loop;
coroutine checks are awaited directly. A check that overruns its deadline is
abandoned: coroutines are cancelled, threads are left to finish on their own.
A blocking check has at most one call in flight; overlapping evaluations wait
on that call, so a hung dependency holds one worker, not one per poll.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
import time
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from typing import Any

from .errors import CheckEvaluationError, CheckTimeoutError
from .models import CheckResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


class Evaluator:
    """Evaluates checks one at a time or as a group with a join barrier."""

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        parallel: bool = True,
        max_workers: int = 8,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.timeout_seconds = timeout_seconds
        self.parallel = parallel
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="health-check")
        self._lock = threading.Lock()
        self._in_flight: dict[int, Future] = {}

    async def evaluate(self, name: str, check: Any, timeout: float | None = None) -> CheckResult:
        """Run one check. Never raises for check failures or timeouts.

        The deadline is ``timeout`` if given, else the check's own
        ``timeout_seconds``, else the evaluator default.
        """
        deadline = timeout or getattr(check, "timeout_seconds", None) or self.timeout_seconds
        t0 = time.perf_counter()
        try:
            result = await asyncio.wait_for(self._invoke(name, check), timeout=deadline)
        except asyncio.TimeoutError:
            error = CheckTimeoutError(name, deadline)
            logger.warning("%s", error)
            return CheckResult.down(name, error=error)
        except CheckEvaluationError as e:
            logger.warning("%s", e)
            return CheckResult.down(name, error=e)

        logger.debug(
            "Check %s: %s (%.1fms)", name, result.status.value, (time.perf_counter() - t0) * 1000,
        )
        if result.name != name:
            result = replace(result, name=name)
        return result

    async def evaluate_all(
        self,
        members: Sequence[tuple[str, Any]],
        group_timeout: float | None = None,
    ) -> dict[str, CheckResult]:
        """Evaluate every ``(name, check)`` member and wait for all of them.

        Members still running when ``group_timeout`` expires are cancelled and
        reported DOWN with a ``CheckTimeoutError``.
        """
        if not members:
            return {}
        if not self.parallel:
            return await self._evaluate_sequential(members, group_timeout)

        tasks = {
            name: asyncio.create_task(self.evaluate(name, check), name=f"health-{name}")
            for name, check in members
        }
        try:
            done, pending = await asyncio.wait(tasks.values(), timeout=group_timeout)
        except asyncio.CancelledError:
            for task in tasks.values():
                task.cancel()
            raise
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning("Group deadline hit: %d check(s) cancelled", len(pending))

        results: dict[str, CheckResult] = {}
        for name, task in tasks.items():
            if task in done:
                results[name] = task.result()
            else:
                results[name] = _group_timeout(name, group_timeout)
        return results

    async def _evaluate_sequential(
        self,
        members: Sequence[tuple[str, Any]],
        group_timeout: float | None,
    ) -> dict[str, CheckResult]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + group_timeout if group_timeout else None
        results: dict[str, CheckResult] = {}

        for name, check in members:
            if deadline is None:
                results[name] = await self.evaluate(name, check)
                continue
            remaining = deadline - loop.time()
            if remaining <= 0:
                results[name] = _group_timeout(name, group_timeout)
                continue
            try:
                results[name] = await asyncio.wait_for(self.evaluate(name, check), remaining)
            except asyncio.TimeoutError:
                results[name] = _group_timeout(name, group_timeout)
        return results

    async def _invoke(self, name: str, check: Any) -> CheckResult:
        if inspect.iscoroutinefunction(check.evaluate):
            try:
                value = await check.evaluate()
            except Exception as e:
                raise CheckEvaluationError(name, _reason(e)) from e
        else:
            value = await asyncio.shield(asyncio.wrap_future(self._submit(name, check)))

        if not isinstance(value, CheckResult):
            raise CheckEvaluationError(
                name, f"evaluate() returned {type(value).__name__}, expected CheckResult",
            )
        return value

    def _submit(self, name: str, check: Any) -> Future:
        """Start a blocking call, or join the one already running for ``check``."""
        key = id(check)
        with self._lock:
            future = self._in_flight.get(key)
            if future is not None:
                logger.debug("Check %s still running, joining the in-flight call", name)
                return future
            future = self._executor.submit(_call_blocking, name, check)
            self._in_flight[key] = future
        future.add_done_callback(lambda f: self._release(key, f))
        return future

    def _release(self, key: int, future: Future) -> None:
        with self._lock:
            if self._in_flight.get(key) is future:
                del self._in_flight[key]

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


def _call_blocking(name: str, check: Any) -> Any:
    try:
        return check.evaluate()
    except Exception as e:
        raise CheckEvaluationError(name, _reason(e)) from e


def _reason(error: Exception) -> str:
    return f"{type(error).__name__}: {error}" if str(error) else type(error).__name__


def _group_timeout(name: str, group_timeout: float | None) -> CheckResult:
    error = CheckTimeoutError(name, group_timeout or 0.0)
    return CheckResult.down(name, error=error)
