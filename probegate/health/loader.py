"""Health config loader: builds a HealthEngine from health.yaml.

Format:

    checks:
      - name: db
        type: tcp            # ping | warmup | http | tcp
        hostname: localhost
        port: 5432
        timeout_seconds: 2
        cache_ttl_seconds: 10

    groups:
      readiness:
        include: "*"         # or a list of check names
        exclude: []
        show_details: always # always | never | when_authorized
        timeout_seconds: 8
      liveness:
        include: []
        show_details: never

    http_mapping:
      OUT_OF_SERVICE: 503
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from ..config import Settings
from .checks import build_check
from .engine import HealthEngine, HealthEngineBuilder
from .errors import ConfigError, HealthError
from .groups import WILDCARD

logger = logging.getLogger(__name__)

# Used when the config file is missing or empty: a self check and the two
# standard probes.
DEFAULT_CONFIG: dict[str, Any] = {
    "checks": [{"name": "ping", "type": "ping"}],
    "groups": {
        "liveness": {"include": [], "show_details": "never"},
        "readiness": {"include": WILDCARD, "show_details": "never"},
    },
}


def load_config(path: Path) -> dict[str, Any]:
    """Parse the YAML file, falling back to ``DEFAULT_CONFIG`` if it is missing or empty."""
    if not path.exists():
        logger.warning("Health config not found: %s, using defaults", path)
        return DEFAULT_CONFIG

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e

    if raw is None:
        logger.warning("Health config is empty: %s, using defaults", path)
        return DEFAULT_CONFIG
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return raw


def build_engine(
    raw: Mapping[str, Any],
    settings: Settings,
    extra_checks: Mapping[str, Any] | None = None,
) -> HealthEngine:
    """Wire checks declared in ``raw`` plus ``extra_checks`` into an engine."""
    builder = HealthEngineBuilder()
    builder.timeouts(settings.check_timeout_seconds, settings.parallel_checks, settings.max_workers)
    builder.root_details(settings.root_show_details)

    try:
        for entry in raw.get("checks") or []:
            name = entry.get("name")
            if not name:
                raise ConfigError(f"Check entry without a name: {entry}")
            builder.register(name, build_check(entry))

        for name, check in (extra_checks or {}).items():
            builder.register(name, check)

        for entry in _group_entries(raw.get("groups")):
            timeout = entry.get("timeout_seconds", settings.group_timeout_seconds)
            builder.group(
                entry["name"],
                include=entry.get("include", WILDCARD) or (),
                show_details=entry.get("show_details", "never"),
                exclude=entry.get("exclude") or (),
                timeout_seconds=float(timeout) if timeout is not None else None,
            )

        codes = dict(raw.get("http_mapping") or {})
        codes.update(settings.status_http_mapping)
        builder.http_mapping(codes)
        return builder.build()
    except ConfigError:
        raise
    except (HealthError, KeyError, TypeError, ValueError, AttributeError) as e:
        raise ConfigError(f"Invalid health config: {e}") from e


def load_engine(
    settings: Settings,
    path: Path | None = None,
    extra_checks: Mapping[str, Any] | None = None,
) -> HealthEngine:
    """Load ``settings.health_config_file`` (relative to CWD) and build an engine."""
    config_path = path or Path(settings.health_config_file)
    if not config_path.is_absolute():
        config_path = Path.cwd() / config_path
    return build_engine(load_config(config_path), settings, extra_checks)


def _group_entries(raw_groups: Any) -> list[dict[str, Any]]:
    if not raw_groups:
        return []
    if isinstance(raw_groups, dict):
        # Dict format: { readiness: {include: "*"}, liveness: {...} }
        return [{"name": name, **(data or {})} for name, data in raw_groups.items()]
    # List format: [{ name: readiness, include: "*" }, ...]
    return list(raw_groups)
