"""Factory for selecting the BaaS backend from the environment."""

from __future__ import annotations

import os
from pathlib import Path

from inkora.adapters.postgrest_baas import DEFAULT_TIMEOUT_SECONDS, PostgrestBaas
from inkora.adapters.sqlite_baas import SQLiteBaas
from inkora.domain.ports import BaasClient

DEFAULT_DB_PATH = Path("work/local/inkora.db")


def _float_env(name: str, default: float, *, minimum: float, maximum: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return max(minimum, min(maximum, value))


def resolve_db_path(db_path: Path | None = None) -> Path:
    """Resolve DB path from explicit arg, env var, then default path."""
    if db_path is not None:
        return db_path
    env_value = os.environ.get("INKORA_DB_PATH", "").strip()
    if env_value:
        return Path(env_value)
    return DEFAULT_DB_PATH


def create_baas_client(*, db_path: Path | None = None) -> BaasClient:
    """Build the configured backend: local SQLite preview or the hosted project."""
    backend = os.environ.get("INKORA_BAAS_BACKEND", "sqlite").strip().lower()
    if backend in {"", "sqlite"}:
        return SQLiteBaas(db_path=resolve_db_path(db_path))
    if backend == "postgrest":
        base_url = os.environ.get("INKORA_BAAS_URL", "").strip()
        anon_key = os.environ.get("INKORA_BAAS_ANON_KEY", "").strip()
        if not base_url or not anon_key:
            raise RuntimeError(
                "INKORA_BAAS_BACKEND=postgrest requires INKORA_BAAS_URL and INKORA_BAAS_ANON_KEY."
            )
        timeout = _float_env(
            "INKORA_BAAS_TIMEOUT_SECONDS",
            DEFAULT_TIMEOUT_SECONDS,
            minimum=1.0,
            maximum=300.0,
        )
        return PostgrestBaas(base_url=base_url, anon_key=anon_key, timeout_seconds=timeout)
    raise RuntimeError("Unsupported INKORA_BAAS_BACKEND value. Expected sqlite or postgrest.")
