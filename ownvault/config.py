"""
Centralized configuration for ownvault.

All configuration is loaded from environment variables with sensible defaults.

Usage:
    from ownvault.config import get_config
    cfg = get_config()
    print(cfg.backend)         # "memory"
    print(cfg.snapshot_dir)    # ~/ownvault/records or $OWNVAULT_SNAPSHOT_DIR
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

VALID_BACKENDS = ("memory", "postgres")


@dataclass(frozen=True)
class DatabaseConfig:
    """PostgreSQL connection parameters."""

    host: str = ""  # empty = Unix socket (peer auth); set to 127.0.0.1 for TCP
    port: int = 5432
    name: str = "ownvault"
    user: str = "ownvault"
    password: str = ""
    pool_max: int = 10

    @property
    def dict(self) -> dict[str, str | int]:
        """Return a psycopg2.connect() kwargs dict."""
        d: dict[str, str | int] = {
            "dbname": self.name,
            "port": self.port,
        }
        if self.host:
            d["host"] = self.host
        if self.user:
            d["user"] = self.user
        if self.password:
            d["password"] = self.password
        return d


@dataclass(frozen=True)
class RedisConfig:
    """Redis connection parameters for the event bus."""

    host: str = "127.0.0.1"
    port: int = 6379
    db: int = 0
    password: str = ""

    @property
    def url(self) -> str:
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"


@dataclass(frozen=True)
class PayloadConfig:
    """Payload validation policy. The defaults accept every payload."""

    max_bytes: int | None = None
    allow_empty: bool = True


@dataclass(frozen=True)
class Config:
    """Top-level ownvault configuration."""

    workspace: Path = field(default_factory=lambda: Path.home() / "ownvault")

    # Storage
    backend: str = "memory"
    snapshot_dir: Path | None = None

    # Components
    db: DatabaseConfig = field(default_factory=DatabaseConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    payload: PayloadConfig = field(default_factory=PayloadConfig)

    # HTTP surface
    auth_secret: str = ""
    api_port: int = 9120


# Singleton
_config: Config | None = None


def get_config() -> Config:
    """Get or create the singleton config from environment variables."""
    global _config
    if _config is not None:
        return _config
    _config = _load_from_env()
    return _config


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.lower() in ("true", "1", "yes")


def _load_from_env() -> Config:
    """Load configuration from environment variables."""
    workspace = Path(os.environ.get("OWNVAULT_WORKSPACE", Path.home() / "ownvault"))

    backend = os.environ.get("OWNVAULT_BACKEND", "memory").lower()
    if backend not in VALID_BACKENDS:
        raise ValueError(
            f"OWNVAULT_BACKEND must be one of {', '.join(VALID_BACKENDS)}, got {backend!r}"
        )

    # Unset -> default directory in the workspace; set but empty -> no snapshot.
    raw_snapshot = os.environ.get("OWNVAULT_SNAPSHOT_DIR")
    if raw_snapshot is None:
        snapshot_dir: Path | None = workspace / "records"
    elif raw_snapshot == "":
        snapshot_dir = None
    else:
        snapshot_dir = Path(raw_snapshot)

    db = DatabaseConfig(
        host=os.environ.get("OWNVAULT_DB_HOST", ""),
        port=int(os.environ.get("OWNVAULT_DB_PORT", "5432")),
        name=os.environ.get("OWNVAULT_DB_NAME", "ownvault"),
        user=os.environ.get("OWNVAULT_DB_USER", os.environ.get("USER", "ownvault")),
        password=os.environ.get("OWNVAULT_DB_PASSWORD", ""),
        pool_max=int(os.environ.get("OWNVAULT_DB_POOL_MAX", "10")),
    )

    redis_cfg = RedisConfig(
        host=os.environ.get("OWNVAULT_REDIS_HOST", "127.0.0.1"),
        port=int(os.environ.get("OWNVAULT_REDIS_PORT", "6379")),
        db=int(os.environ.get("OWNVAULT_REDIS_DB", "0")),
        password=os.environ.get("OWNVAULT_REDIS_PASSWORD", ""),
    )

    max_bytes = os.environ.get("OWNVAULT_MAX_PAYLOAD_BYTES", "")
    payload = PayloadConfig(
        max_bytes=int(max_bytes) if max_bytes else None,
        allow_empty=_env_bool("OWNVAULT_ALLOW_EMPTY", True),
    )

    return Config(
        workspace=workspace,
        backend=backend,
        snapshot_dir=snapshot_dir,
        db=db,
        redis=redis_cfg,
        payload=payload,
        auth_secret=os.environ.get("OWNVAULT_AUTH_SECRET", ""),
        api_port=int(os.environ.get("OWNVAULT_API_PORT", "9120")),
    )


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
