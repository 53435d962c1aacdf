"""Core configuration.

Why here:
- Centralizes environment variables (pydantic-settings) without leaking them
  into the CLI.
- Adapters read configuration through `AppSettings` / `ServerConfig` only.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_HOSTNAME = "localhost"
DEFAULT_PORT = 9998

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "tika-d2"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "tika-d2"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "tika-d2"
    return Path.home() / ".config" / "tika-d2"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], env_path: Path | None = None) -> Path:
    """Write/update variables in the user's global .env file."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# tika-d2 user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class ServerConfig(BaseModel):
    """Recognized options of a launched server, with defaults applied."""

    model_config = ConfigDict(frozen=True)

    hostname: str = Field(
        default=DEFAULT_HOSTNAME,
        min_length=1,
        description="Host the server is reached at.",
    )
    port: int = Field(
        default=DEFAULT_PORT,
        ge=1,
        le=65535,
        description="Port passed to the server with `-p`.",
    )
    startup_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds to wait for the server to answer /version.",
    )
    poll_interval: float = Field(
        default=0.5,
        gt=0,
        description="Seconds between readiness attempts.",
    )
    stop_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait after SIGTERM before killing the process.",
    )


class AppSettings(BaseSettings):
    """Central application configuration.

    Order: project `.env` first (development), then the user's global `.env`.
    """

    model_config = SettingsConfigDict(
        env_prefix="TIKA_D2_",
        extra="ignore",
        case_sensitive=False,
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    server_url: str | None = Field(
        default=None,
        description="URL of an already running Tika server.",
    )
    server_jar: Path | None = Field(
        default=None,
        description="Path to the Tika server JAR to launch.",
    )
    java_path: str = Field(
        default="java",
        min_length=1,
        description="Java runtime used to launch the JAR.",
    )
    hostname: str = Field(default=DEFAULT_HOSTNAME, min_length=1)
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    startup_timeout_seconds: float = Field(default=10.0, gt=0)
    poll_interval_seconds: float = Field(default=0.5, gt=0)
    stop_timeout_seconds: float = Field(default=5.0, gt=0)

    http_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout per request (seconds). Parsing large files is slow.",
    )
    user_agent: str = Field(
        default="tika-d2/0.1",
        min_length=1,
    )
    log_level: LogLevel = Field(
        default="WARNING",
        description="Log level for the CLI.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    def server_config(self) -> ServerConfig:
        return ServerConfig(
            hostname=self.hostname,
            port=self.port,
            startup_timeout=self.startup_timeout_seconds,
            poll_interval=self.poll_interval_seconds,
            stop_timeout=self.stop_timeout_seconds,
        )
