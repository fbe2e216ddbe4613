"""Runner configuration — loaded from environment / .env file."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class RunnerSettings(BaseSettings):
    """Settings for the check runner service."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "CHECKRUNNER_",
        "extra": "ignore",
        "frozen": True,
    }

    # Web API (topology source + readiness gate)
    api_host: str = "localhost"
    api_port: int = 8000
    api_timeout: float = 30.0  # seconds per HTTP call
    api_ping_timeout: float = 2.0  # liveness probe, kept within one retry_delay

    # Workspace
    ansible_folder: str = "/tmp/checkrunner"
    templates_folder: str = ""  # empty = use the bundled templates

    # Scheduling
    interval: int = 300  # seconds between ticks
    playbook_timeout: int = 1800  # 30 min hard cap per ansible-playbook run

    # Startup backoff
    retry_attempts: int = 8
    retry_delay: float = 2.0
    retry_max_jitter: float = 3.0
    retry_max_delay: float = 128.0

    # HTTP surface
    runner_host: str = "127.0.0.1"
    runner_port: int = 8080

    # Logging
    log_level: str = "INFO"


settings = RunnerSettings()
