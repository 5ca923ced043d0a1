"""Tests for the one-shot `probegate check` command."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from probegate.main import EXIT_MISCONFIGURED, EXIT_NOT_UP, EXIT_UP, run_check


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "health.yaml"
    path.write_text(yaml.dump({
        "checks": [
            {"name": "ping", "type": "ping"},
            {"name": "fake", "type": "warmup", "delay_seconds": 30},
        ],
        "groups": {
            "readiness": {"include": "*", "show_details": "always"},
            "liveness": {"include": [], "show_details": "never"},
        },
    }))
    return path


class TestRunCheck:
    def test_liveness_up(self, config_file: Path) -> None:
        assert run_check("liveness", str(config_file), authorized=False) == EXIT_UP

    def test_readiness_down_during_warm_up(self, config_file: Path) -> None:
        assert run_check("readiness", str(config_file), authorized=False) == EXIT_NOT_UP

    def test_root(self, config_file: Path) -> None:
        assert run_check("", str(config_file), authorized=True) == EXIT_NOT_UP

    def test_unknown_group(self, config_file: Path) -> None:
        assert run_check("bogus", str(config_file), authorized=False) == EXIT_MISCONFIGURED

    def test_broken_config(self, tmp_path: Path) -> None:
        path = tmp_path / "health.yaml"
        path.write_text("groups: {readiness: {show_details: maybe}}\n")
        assert run_check("readiness", str(path), authorized=False) == EXIT_MISCONFIGURED
