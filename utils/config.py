import os
import logging
import numpy as np
from dataclasses import dataclass
from urllib.parse import urlparse

DEFAULT_API_BASE_URL = "http://127.0.0.1:8000"

def _setting(name: str, default: str | None = None) -> str | None:
    """
    Priority: env var → default. Empty values count as unset.
    """
    value = os.getenv(name)
    return value if value else default

def _guard_production(name: str, url: str) -> None:
    env = os.getenv("ENV", "local")

    # Enforce rules only in production
    if env == "production":
        parsed = urlparse(url)
        if parsed.hostname in {"localhost", "127.0.0.1"}:
            raise RuntimeError(
                f"In production, {name} must not point to localhost."
            )

def get_api_base_url() -> str:
    """
    Resolve ANALYSIS_API_BASE_URL with sensible local defaults.
    """
    api_url = _setting("ANALYSIS_API_BASE_URL", DEFAULT_API_BASE_URL)
    _guard_production("ANALYSIS_API_BASE_URL", api_url)
    return api_url.rstrip("/")

def get_supabase_settings() -> tuple[str, str]:
    """
    Resolve SUPABASE_URL and SUPABASE_KEY. Both are required.
    """
    url = _setting("SUPABASE_URL")
    key = _setting("SUPABASE_KEY")
    if not url or not key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set.")
    return url.rstrip("/"), key

@dataclass(frozen=True)
class SyncSettings:
    max_retries: int = 3
    batch_size: int = 3
    batch_delay: float = 1.0
    request_timeout: float = 30.0
    failure_policy: str = "keep"

def get_sync_settings() -> SyncSettings:
    policy = (_setting("SYNC_FAILURE_POLICY", "keep") or "keep").strip().lower()
    if policy not in {"keep", "rollback"}:
        raise RuntimeError(f"SYNC_FAILURE_POLICY must be 'keep' or 'rollback', got '{policy}'.")

    return SyncSettings(
        max_retries=int(_setting("SYNC_MAX_RETRIES", "3")),
        batch_size=int(_setting("SYNC_BATCH_SIZE", "3")),
        batch_delay=float(_setting("SYNC_BATCH_DELAY", "1.0")),
        request_timeout=float(_setting("REQUEST_TIMEOUT", "30")),
        failure_policy=policy,
    )

def configure_logging() -> None:
    logging.basicConfig(
        level=(_setting("LOG_LEVEL", "INFO") or "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

def normalize_params(params: dict) -> dict:
    """
    Convert params dict into JSON-safe Python primitives.
    - Converts numpy scalars → Python floats
    - Replaces NaN / inf → None
    """
    clean = {}

    for k, v in params.items():
        if isinstance(v, (bool, np.bool_)):
            clean[k] = bool(v)
        elif isinstance(v, (int, float, np.integer, np.floating)):
            v = float(v)
            if not np.isfinite(v):
                clean[k] = None
            else:
                clean[k] = v
        else:
            clean[k] = v

    return clean
