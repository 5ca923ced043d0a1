"""Tests for loading checks and groups from health.yaml."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
import yaml

from probegate.config import Settings
from probegate.health.checks import CachedCheck, PingCheck, WarmupCheck
from probegate.health.errors import ConfigError
from probegate.health.groups import ShowDetails
from probegate.health.loader import DEFAULT_CONFIG, build_engine, load_config, load_engine
from probegate.health.models import Status


@pytest.fixture
def settings() -> Settings:
    return Settings(check_timeout_seconds=2.0, max_workers=2)


@pytest.fixture
def sample_yaml(tmp_path: Path) -> Path:
    """A health.yaml mirroring the standard probe layout."""
    data = {
        "checks": [
            {"name": "ping", "type": "ping"},
            {"name": "fake", "type": "warmup", "delay_seconds": 30},
            {"name": "api", "type": "http", "url": "http://localhost:9/health", "cache_ttl_seconds": 5},
        ],
        "groups": {
            "readiness": {"include": "*", "exclude": ["api"], "show_details": "always", "timeout_seconds": 4},
            "liveness": {"include": [], "show_details": "never"},
            "ops": {"include": ["ping", "api"], "show_details": "when_authorized"},
        },
        "http_mapping": {"OUT_OF_SERVICE": 200},
    }
    path = tmp_path / "health.yaml"
    path.write_text(yaml.dump(data))
    return path


class TestLoadEngine:
    def test_checks_registered(self, sample_yaml: Path, settings: Settings) -> None:
        engine = load_engine(settings, sample_yaml)
        try:
            assert engine.registry.names() == ["api", "fake", "ping"]
            assert isinstance(engine.registry.get("ping"), PingCheck)
            assert isinstance(engine.registry.get("fake"), WarmupCheck)
            assert isinstance(engine.registry.get("api"), CachedCheck)
        finally:
            engine.close()

    def test_groups_configured(self, sample_yaml: Path, settings: Settings) -> None:
        engine = load_engine(settings, sample_yaml)
        try:
            assert engine.group_names() == ["liveness", "ops", "readiness"]
            readiness = engine.groups.get("readiness")
            assert readiness.includes_all
            assert readiness.exclude == frozenset({"api"})
            assert readiness.timeout_seconds == 4.0
            assert engine.groups.get("ops").show_details is ShowDetails.WHEN_AUTHORIZED
            assert engine.groups.get("liveness").include == ()
        finally:
            engine.close()

    def test_settings_applied(self, sample_yaml: Path, settings: Settings) -> None:
        engine = load_engine(settings, sample_yaml)
        try:
            assert engine.evaluator.timeout_seconds == 2.0
            assert engine.status_codes.code_for(Status.OUT_OF_SERVICE) == 200
        finally:
            engine.close()

    def test_settings_mapping_overrides_file(self, sample_yaml: Path) -> None:
        settings = Settings(status_http_mapping={"OUT_OF_SERVICE": 503, "UNKNOWN": 200})
        engine = load_engine(settings, sample_yaml)
        try:
            assert engine.status_codes.code_for(Status.OUT_OF_SERVICE) == 503
            assert engine.status_codes.code_for(Status.UNKNOWN) == 200
        finally:
            engine.close()

    def test_group_timeout_default_from_settings(self, sample_yaml: Path) -> None:
        engine = load_engine(Settings(group_timeout_seconds=9), sample_yaml)
        try:
            assert engine.groups.get("liveness").timeout_seconds == 9.0
            assert engine.groups.get("readiness").timeout_seconds == 4.0
        finally:
            engine.close()

    def test_extra_checks(self, sample_yaml: Path, settings: Settings) -> None:
        engine = load_engine(settings, sample_yaml, extra_checks={"custom": PingCheck()})
        try:
            assert "custom" in engine.registry
        finally:
            engine.close()

    def test_liveness_query(self, sample_yaml: Path, settings: Settings) -> None:
        engine = load_engine(settings, sample_yaml)
        try:
            code, result = asyncio.run(engine.query("liveness"))
        finally:
            engine.close()
        assert code == 200
        assert result.to_dict() == {"status": "UP"}

    def test_relative_path_resolved_from_cwd(
        self, sample_yaml: Path, settings: Settings, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.chdir(sample_yaml.parent)
        engine = load_engine(Settings(health_config_file="health.yaml"))
        try:
            assert "fake" in engine.registry
        finally:
            engine.close()


class TestDefaults:
    def test_missing_file_uses_defaults(self, tmp_path: Path, settings: Settings) -> None:
        assert load_config(tmp_path / "absent.yaml") is DEFAULT_CONFIG

        engine = load_engine(settings, tmp_path / "absent.yaml")
        try:
            assert engine.registry.names() == ["ping"]
            assert engine.group_names() == ["liveness", "readiness"]
        finally:
            engine.close()

    def test_empty_file_uses_defaults(self, tmp_path: Path, settings: Settings) -> None:
        path = tmp_path / "health.yaml"
        path.write_text("")
        assert load_config(path) is DEFAULT_CONFIG

        engine = load_engine(settings, path)
        try:
            assert engine.registry.names() == ["ping"]
            assert engine.group_names() == ["liveness", "readiness"]
        finally:
            engine.close()


class TestInvalidConfig:
    def _write(self, tmp_path: Path, text: str) -> Path:
        path = tmp_path / "health.yaml"
        path.write_text(text)
        return path

    def test_unparseable_yaml(self, tmp_path: Path, settings: Settings) -> None:
        path = self._write(tmp_path, "checks: [unclosed")
        with pytest.raises(ConfigError):
            load_engine(settings, path)

    def test_top_level_not_mapping(self, tmp_path: Path, settings: Settings) -> None:
        path = self._write(tmp_path, "- just\n- a list\n")
        with pytest.raises(ConfigError):
            load_engine(settings, path)

    def test_duplicate_check(self, settings: Settings) -> None:
        raw = {"checks": [{"name": "a", "type": "ping"}, {"name": "a", "type": "ping"}]}
        with pytest.raises(ConfigError):
            build_engine(raw, settings)

    def test_check_without_name(self, settings: Settings) -> None:
        with pytest.raises(ConfigError):
            build_engine({"checks": [{"type": "ping"}]}, settings)

    def test_unknown_check_type(self, settings: Settings) -> None:
        with pytest.raises(ConfigError):
            build_engine({"checks": [{"name": "x", "type": "ftp"}]}, settings)

    def test_bad_show_details(self, settings: Settings) -> None:
        raw = {"groups": {"readiness": {"include": "*", "show_details": "maybe"}}}
        with pytest.raises(ConfigError):
            build_engine(raw, settings)

    def test_bad_http_mapping(self, settings: Settings) -> None:
        with pytest.raises(ConfigError):
            build_engine({"http_mapping": {"DEGRADED": 200}}, settings)

    def test_group_with_unregistered_member(self, settings: Settings) -> None:
        raw = {
            "checks": [{"name": "database", "type": "ping"}],
            "groups": {"readiness": {"include": ["databse"], "show_details": "always"}},
        }
        with pytest.raises(ConfigError, match="databse"):
            build_engine(raw, settings)

    def test_list_format_groups(self, settings: Settings) -> None:
        raw = {
            "checks": [{"name": "ping"}],
            "groups": [{"name": "readiness", "include": ["ping"], "show_details": "always"}],
        }
        engine = build_engine(raw, settings)
        try:
            assert engine.group_names() == ["readiness"]
        finally:
            engine.close()

    def test_list_format_group_without_name(self, settings: Settings) -> None:
        with pytest.raises(ConfigError):
            build_engine({"groups": [{"include": "*"}]}, settings)
