"""Health subsystem: registry, evaluator, groups and the query engine."""

from .checks import CachedCheck, FunctionCheck, HealthCheck, HttpCheck, PingCheck, TcpCheck, WarmupCheck
from .engine import HealthEngine, HealthEngineBuilder, StatusCodeMapping
from .errors import (
    CheckEvaluationError,
    CheckTimeoutError,
    ConfigError,
    DuplicateNameError,
    GroupNotFoundError,
    HealthError,
    NotFoundError,
)
from .evaluator import Evaluator
from .groups import CallerContext, Group, GroupManager, ShowDetails, Visibility
from .models import AggregateResult, CheckResult, Status, aggregate
from .registry import CheckRegistry
