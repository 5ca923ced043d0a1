from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Checks + groups declaration (absolute or relative to CWD)
    health_config_file: str = "health.yaml"

    # Evaluation
    check_timeout_seconds: float = 5.0  # per check, keep above probe period
    group_timeout_seconds: float | None = None  # unset = wait for every check
    parallel_checks: bool = True
    max_workers: int = 8

    # Callers presenting this token in X-Health-Token are authorized
    # (empty = nobody is, so WHEN_AUTHORIZED behaves like NEVER)
    health_token: str = ""

    # Visibility of GET /health (always | never | when_authorized)
    root_show_details: str = "never"

    # Status → HTTP code overrides, e.g. {"OUT_OF_SERVICE": 200}
    status_http_mapping: dict[str, int] = {}

    # Logging
    log_level: str = "INFO"


settings = Settings()
