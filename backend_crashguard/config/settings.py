"""
Application settings.

Typed view over the environment (see config/env.py): remote credentials and
endpoint, timeouts, session TTL, rate-limit backoff hint, local store path,
and the lexicon/threshold overrides used by the heuristic engine.

Lexicon precedence: defaults < JSON file (CRASHGUARD_LEXICON_PATH) <
CRASHGUARD_LEXICON_TERMS / LOCATION_CHURN_THRESHOLD env vars.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from backend_crashguard.analysis_engine.heuristics import Lexicon
from backend_crashguard.config.env import (
    DEFAULT_API_URL,
    DEFAULT_STORE_PATH,
    DEFAULT_USER_AGENT,
    get_api_url,
    get_env_float,
    get_env_int,
    get_env_str,
    get_store_path,
    get_vrchat_credentials,
)
from backend_crashguard.crashguard_logging import get_logger
from backend_crashguard.database.activity_store import DEFAULT_STORE_TIMEOUT_SEC, MAX_VISIT_ROWS
from backend_crashguard.vrchat_api.http_client import (
    DEFAULT_RATE_LIMIT_BACKOFF_SEC,
    DEFAULT_TIMEOUT_SEC,
)
from backend_crashguard.vrchat_api.session import DEFAULT_SESSION_TTL_SEC

logger = get_logger(__name__)


@dataclass
class Settings:
    """Resolved configuration for one analyzer instance."""

    username: str = ""
    password: str = field(default="", repr=False)
    api_url: str = DEFAULT_API_URL
    user_agent: str = DEFAULT_USER_AGENT
    remote_timeout_sec: float = DEFAULT_TIMEOUT_SEC
    session_ttl_sec: float = DEFAULT_SESSION_TTL_SEC
    rate_limit_backoff_sec: float = DEFAULT_RATE_LIMIT_BACKOFF_SEC
    store_path: Path = field(default_factory=lambda: Path(DEFAULT_STORE_PATH))
    store_timeout_sec: float = DEFAULT_STORE_TIMEOUT_SEC
    visit_limit: int = MAX_VISIT_ROWS
    lexicon: Lexicon = field(default_factory=Lexicon)

    def __post_init__(self) -> None:
        self.remote_timeout_sec = max(0.1, float(self.remote_timeout_sec))
        self.visit_limit = max(1, min(int(self.visit_limit), MAX_VISIT_ROWS))
        self.store_path = Path(self.store_path)


def load_lexicon_file(path: str | Path, base: Lexicon | None = None) -> Lexicon:
    """Lexicon from a JSON object {terms, troll_tag, churn_threshold}. Missing file keeps base."""
    path = Path(path)
    base = base or Lexicon()
    if not path.is_file():
        logger.warning("lexicon_file_missing", path=str(path))
        return base
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"lexicon file must hold a JSON object: {path}")
    return Lexicon.from_dict(data, base=base)


def _load_lexicon_from_env() -> Lexicon:
    lexicon = Lexicon()
    lexicon_path = get_env_str("CRASHGUARD_LEXICON_PATH")
    if lexicon_path:
        lexicon = load_lexicon_file(lexicon_path, base=lexicon)
    terms_raw = get_env_str("CRASHGUARD_LEXICON_TERMS")
    if terms_raw:
        terms = [t for t in terms_raw.split(",") if t.strip()]
        lexicon = Lexicon(terms=tuple(terms), troll_tag=lexicon.troll_tag, churn_threshold=lexicon.churn_threshold)
    churn = get_env_int("LOCATION_CHURN_THRESHOLD", lexicon.churn_threshold)
    if churn != lexicon.churn_threshold:
        lexicon = Lexicon(terms=lexicon.terms, troll_tag=lexicon.troll_tag, churn_threshold=churn)
    return lexicon


def get_settings() -> Settings:
    """Build Settings from the environment (and .env when present)."""
    username, password = get_vrchat_credentials()
    settings = Settings(
        username=username,
        password=password,
        api_url=get_api_url(),
        user_agent=get_env_str("VRCHAT_USER_AGENT", DEFAULT_USER_AGENT),
        remote_timeout_sec=get_env_float("REMOTE_TIMEOUT_SEC", DEFAULT_TIMEOUT_SEC),
        session_ttl_sec=get_env_float("SESSION_TTL_SEC", DEFAULT_SESSION_TTL_SEC),
        rate_limit_backoff_sec=get_env_float("RATE_LIMIT_BACKOFF_SEC", DEFAULT_RATE_LIMIT_BACKOFF_SEC),
        store_path=get_store_path(),
        store_timeout_sec=get_env_float("STORE_TIMEOUT_SEC", DEFAULT_STORE_TIMEOUT_SEC),
        visit_limit=get_env_int("LOCATION_VISIT_LIMIT", MAX_VISIT_ROWS),
        lexicon=_load_lexicon_from_env(),
    )
    logger.debug(
        "settings_loaded",
        api_url=settings.api_url,
        store_path=str(settings.store_path),
        has_credentials=bool(username and password),
        lexicon_terms=list(settings.lexicon.terms),
    )
    return settings
