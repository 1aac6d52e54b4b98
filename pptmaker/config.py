"""Environment-driven settings for the MCP server and its download endpoint.

All values come from ``PPTMAKER_*`` environment variables (plus ``MARP_BIN``).
Unset or blank variables fall back to the defaults below.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from pptmaker.errors import ConfigError

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 0  # OS-assigned
DEFAULT_TTL_SECONDS = 1800
DEFAULT_REAP_INTERVAL_SECONDS = 60.0
DEFAULT_LOG_LEVEL = "INFO"

PPTX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    ttl_seconds: float = DEFAULT_TTL_SECONDS
    reap_interval_seconds: float = DEFAULT_REAP_INTERVAL_SECONDS
    files_dir: Path | None = None
    public_base_url: str | None = None
    delete_after_download: bool = False
    marp_bin: str | None = None
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: mapping to read from; defaults to ``os.environ``

        Raises:
            ConfigError: when a numeric or boolean variable cannot be parsed
        """
        env = os.environ if environ is None else environ

        port = _parse_int(env, "PPTMAKER_PORT", DEFAULT_PORT)
        if not 0 <= port <= 65535:
            raise ConfigError(f"PPTMAKER_PORT must be between 0 and 65535, got {port}")

        ttl = _parse_float(env, "PPTMAKER_TTL_SECONDS", DEFAULT_TTL_SECONDS)
        if ttl <= 0:
            raise ConfigError(f"PPTMAKER_TTL_SECONDS must be positive, got {ttl}")

        interval = _parse_float(
            env, "PPTMAKER_REAP_INTERVAL_SECONDS", DEFAULT_REAP_INTERVAL_SECONDS
        )
        if interval <= 0:
            raise ConfigError(
                f"PPTMAKER_REAP_INTERVAL_SECONDS must be positive, got {interval}"
            )

        files_dir = _get(env, "PPTMAKER_FILES_DIR")
        public_base_url = _get(env, "PPTMAKER_PUBLIC_BASE_URL")

        return cls(
            host=_get(env, "PPTMAKER_HOST") or DEFAULT_HOST,
            port=port,
            ttl_seconds=ttl,
            reap_interval_seconds=interval,
            files_dir=Path(files_dir).expanduser() if files_dir else None,
            public_base_url=public_base_url.rstrip("/") if public_base_url else None,
            delete_after_download=_parse_bool(env, "PPTMAKER_DELETE_AFTER_DOWNLOAD", False),
            marp_bin=_get(env, "MARP_BIN"),
            log_level=(_get(env, "PPTMAKER_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
        )


def _get(env: Mapping[str, str], name: str) -> str | None:
    value = env.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _parse_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def _parse_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = _get(env, name)
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")
