"""
Environment variable loading for CrashGuard.

- VRCHAT_USERNAME / VRCHAT_PASSWORD: remote credentials (never hard-coded)
- VRCHAT_API_URL: remote API base URL (default: public VRChat API)
- VRCHAT_USER_AGENT: User-Agent sent with every remote request
- CRASHGUARD_STORE_PATH: path to the local activity store (SQLite)
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is backend_crashguard/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_API_URL = "https://api.vrchat.cloud/api/1"
DEFAULT_USER_AGENT = "CrashGuard/0.1.0 (advisory analysis backend)"
DEFAULT_STORE_PATH = "crashguard_activity.db"


def load_crashguard_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides real env."""
    load_dotenv(_ENV_PATH, override=False)


def get_env_str(name: str, default: str = "") -> str:
    load_crashguard_env()
    return (os.getenv(name) or "").strip() or default


def get_env_float(name: str, default: float) -> float:
    """Return a float env var; malformed values fall back to default."""
    raw = get_env_str(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def get_env_int(name: str, default: int) -> int:
    raw = get_env_str(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_vrchat_credentials() -> tuple[str, str]:
    """Return (username, password) from env; empty strings when not configured."""
    return get_env_str("VRCHAT_USERNAME"), get_env_str("VRCHAT_PASSWORD")


def get_api_url() -> str:
    return get_env_str("VRCHAT_API_URL", DEFAULT_API_URL).rstrip("/")


def get_store_path() -> Path:
    return Path(get_env_str("CRASHGUARD_STORE_PATH", DEFAULT_STORE_PATH))
