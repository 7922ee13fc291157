# backend/eventhub/config.py
"""Process configuration, read once from the environment at startup."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_BLOB_DIR = Path(__file__).resolve().parents[2] / "uploads"


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or malformed."""


def _clean(s: str | None) -> str | None:
    return s.strip().rstrip("/") if s and s.strip() else None


@dataclass(frozen=True)
class Settings:
    database_url: str
    blob_dir: Path = DEFAULT_BLOB_DIR
    blob_container: str = "events-images"
    blob_public_url: str = "/uploads"
    frontend_origin: str = "http://localhost:5173"
    extra_cors_origins: tuple[str, ...] = field(default_factory=tuple)
    app_env: str = "development"
    log_level: str = "INFO"
    auto_migrate: bool = False

    @property
    def allow_origins(self) -> list[str]:
        if "*" in self.extra_cors_origins:
            return ["*"]
        return sorted(o for o in {self.frontend_origin, *self.extra_cors_origins} if o)

    @property
    def serves_blobs_locally(self) -> bool:
        """True when blob URLs point back at this app rather than a CDN."""
        return self.blob_public_url.startswith("/")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment.

    Raises ConfigError listing every missing required variable, so a
    misconfigured deployment fails at startup instead of on first request.
    """
    env = os.environ if environ is None else environ

    missing = [name for name in ("DATABASE_URL",) if not (env.get(name) or "").strip()]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    log_level = (env.get("LOG_LEVEL") or "INFO").strip().upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError(f"LOG_LEVEL has unknown level {log_level!r}")

    raw_extra = env.get("EXTRA_CORS_ORIGINS", "")
    extra = tuple(x for x in (_clean(p) for p in raw_extra.split(",")) if x)

    return Settings(
        database_url=env["DATABASE_URL"].strip(),
        blob_dir=Path(env["BLOB_DIR"]) if env.get("BLOB_DIR") else DEFAULT_BLOB_DIR,
        blob_container=(env.get("BLOB_CONTAINER") or "events-images").strip(),
        blob_public_url=_clean(env.get("BLOB_PUBLIC_URL")) or "/uploads",
        frontend_origin=_clean(env.get("FRONTEND_ORIGIN")) or "http://localhost:5173",
        extra_cors_origins=extra,
        app_env=(env.get("APP_ENV") or "development").strip(),
        log_level=log_level,
        auto_migrate=env.get("AUTO_MIGRATE") == "1",
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("eventhub").setLevel(level)
