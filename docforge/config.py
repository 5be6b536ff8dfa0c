"""Environment driven configuration for :mod:`docforge`."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .exceptions import ConfigurationError

ENV_PREFIX = "DOCFORGE_"


def _default_work_dir() -> Path:
    return Path(tempfile.gettempdir()) / "docforge"


def _lookup(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(ENV_PREFIX + name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_int(environ: Mapping[str, str], name: str, default: int, *, minimum: int = 0) -> int:
    raw = _lookup(environ, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be at least {minimum}, got {value}")
    return value


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = _lookup(environ, name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from exc
    if value < 0:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must not be negative, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime settings shared by the backend and the CLI."""

    work_dir: Path = field(default_factory=_default_work_dir)
    max_upload_bytes: int = 25 * 1024 * 1024
    request_timeout: Optional[float] = 120.0
    render_timeout: float = 60.0
    raster_dpi: int = 100
    raster_quality: int = 85
    max_workers: int = 4
    browser_path: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build :class:`Settings` from ``DOCFORGE_*`` environment variables."""

        env = os.environ if environ is None else environ

        work_dir_raw = _lookup(env, "WORK_DIR")
        work_dir = Path(work_dir_raw).expanduser() if work_dir_raw else _default_work_dir()

        timeout = _env_float(env, "REQUEST_TIMEOUT", 120.0)
        quality = _env_int(env, "RASTER_QUALITY", 85, minimum=1)
        if quality > 95:
            raise ConfigurationError(f"{ENV_PREFIX}RASTER_QUALITY must be at most 95, got {quality}")

        log_level = (_lookup(env, "LOG_LEVEL") or "INFO").upper()
        if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ConfigurationError(f"{ENV_PREFIX}LOG_LEVEL is not a logging level: {log_level!r}")

        return cls(
            work_dir=work_dir,
            max_upload_bytes=_env_int(env, "MAX_UPLOAD_MB", 25, minimum=1) * 1024 * 1024,
            request_timeout=timeout or None,
            render_timeout=_env_float(env, "RENDER_TIMEOUT", 60.0),
            raster_dpi=_env_int(env, "RASTER_DPI", 100, minimum=1),
            raster_quality=quality,
            max_workers=_env_int(env, "MAX_WORKERS", 4, minimum=1),
            browser_path=_lookup(env, "BROWSER"),
            log_level=log_level,
        )


__all__ = ["Settings", "ENV_PREFIX"]
