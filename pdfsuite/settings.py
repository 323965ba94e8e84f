"""Application settings and configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Tuple

from dotenv import dotenv_values

ENV_FILE_PATH = Path(os.getenv("ENV_FILE", ".env"))


@dataclass(slots=True)
class Settings:
    """Container for configuration values loaded from environment variables."""

    data_dir: Path
    storage_dir: Path
    blob_ttl_seconds: float
    worker_url: Optional[str]
    worker_timeout: float
    log_level: str
    allowed_origins: Tuple[str, ...]
    fetch_timeout: float = 30.0


def _read_float(name: str, default: float, *, minimum: Optional[float] = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        value = default
    else:
        try:
            value = float(raw)
        except ValueError as exc:
            raise ValueError(f"Environment variable {name} must be a float, got {raw!r}") from exc
    if minimum is not None and value < minimum:
        raise ValueError(f"Environment variable {name} must be >= {minimum}, got {value}")
    return value


def _read_origins(name: str) -> Tuple[str, ...]:
    raw = os.getenv(name, "*")
    origins = tuple(origin.strip() for origin in raw.split(",") if origin.strip())
    return origins or ("*",)


def load_env_file(path: Optional[Path] = None) -> Dict[str, str]:
    """Load ``KEY=VALUE`` pairs from a dotenv file into ``os.environ``.

    Values from the file override the current environment. Returns the
    pairs that were applied; a missing file yields an empty dict.
    """

    target = path or ENV_FILE_PATH
    if not target.is_file():
        return {}
    loaded: Dict[str, str] = {}
    for key, value in dotenv_values(target).items():
        value = value if value is not None else ""
        os.environ[key] = value
        loaded[key] = value
    return loaded


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read and memoise :class:`Settings` from environment variables."""

    data_dir = Path(os.getenv("DATA_DIR", "/tmp/pdfsuite")).resolve()
    storage_dir = Path(os.getenv("STORAGE_DIR", str(data_dir / "storage"))).resolve()
    worker_url = os.getenv("PDF_WORKER_URL") or None

    return Settings(
        data_dir=data_dir,
        storage_dir=storage_dir,
        blob_ttl_seconds=_read_float("BLOB_TTL_SECONDS", 3600.0, minimum=1.0),
        worker_url=worker_url.rstrip("/") if worker_url else None,
        worker_timeout=_read_float("WORKER_TIMEOUT", 300.0, minimum=1.0),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        allowed_origins=_read_origins("ALLOWED_ORIGINS"),
        fetch_timeout=_read_float("FETCH_TIMEOUT", 30.0, minimum=1.0),
    )


__all__ = ["ENV_FILE_PATH", "Settings", "get_settings", "load_env_file"]
