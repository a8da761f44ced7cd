"""
Analytics pipeline: analyze one identifier (classify -> collect -> rules -> verdict).

Single entry point for the front-end and CLI. The remote and local collectors
run concurrently (fan-out on a two-worker pool) and are joined before
aggregation (fan-in). Per-source failures degrade the verdict instead of
failing it; InvalidIdentifier, RateLimited and AllSourcesUnavailable abort.
Each analysis owns its HTTP client and SQLite connection and releases both on
every exit path.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone

import httpx

from backend_crashguard.analysis_engine.aggregator import aggregate
from backend_crashguard.analysis_engine.heuristics import RuleSet, evaluate
from backend_crashguard.analysis_engine.identifier import classify_identifier
from backend_crashguard.analysis_engine.models import Identifier, Indicator, Verdict
from backend_crashguard.config.settings import Settings, get_settings
from backend_crashguard.core.exceptions import (
    AuthenticationError,
    NoActivity,
    NotFound,
    RateLimited,
    StoreUnavailable,
    TransientNetworkError,
)
from backend_crashguard.crashguard_logging import bind_subject, get_logger
from backend_crashguard.database.activity_store import ActivityStore
from backend_crashguard.vrchat_api.client import VRChatClient
from backend_crashguard.vrchat_api.http_client import build_http_client
from backend_crashguard.vrchat_api.session import SessionManager

logger = get_logger(__name__)

# Remote failures that degrade the verdict; RateLimited aborts the analysis
REMOTE_SOURCE_ERRORS = (AuthenticationError, NotFound, TransientNetworkError)


@dataclass
class SourceOutcome:
    """Result of one collector branch: its indicators, or a failure marker."""

    indicators: list[Indicator] = field(default_factory=list)
    failed: bool = False
    error_kind: str | None = None
    applicable: bool = True


class CrashGuardAnalyzer:
    """
    Long-lived analyzer. Holds the SessionManager (so the login is reused
    across analyses) and the store location; everything else is per call.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        sessions: SessionManager | None = None,
        store: ActivityStore | None = None,
        rule_set: RuleSet | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.sessions = sessions or SessionManager(
            self.settings.username,
            self.settings.password,
            ttl_sec=self.settings.session_ttl_sec,
            rate_limit_backoff_sec=self.settings.rate_limit_backoff_sec,
        )
        self.store = store or ActivityStore(
            self.settings.store_path,
            visit_limit=self.settings.visit_limit,
            timeout_sec=self.settings.store_timeout_sec,
        )
        self.rule_set = rule_set or RuleSet()
        self._transport = transport

    def analyze(self, raw_identifier: str, now: datetime | None = None) -> Verdict:
        """
        Classify, collect both sources concurrently, evaluate, aggregate.

        Raises InvalidIdentifier (before any I/O), RateLimited, or
        AllSourcesUnavailable. Every other collector failure degrades the verdict.
        """
        identifier = classify_identifier(raw_identifier)
        now = now or datetime.now(timezone.utc)
        log = bind_subject(identifier.value)
        log.info("analysis_start", kind=identifier.kind.value)

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="crashguard") as pool:
            remote_future = pool.submit(self._collect_remote, identifier)
            local_future = pool.submit(self._collect_local, identifier, int(now.timestamp()))
            # Pool exit joins both branches even when one raises
            remote = remote_future.result()
            local = local_future.result()

        # Avatars have no local source: the remote outcome alone decides failure
        local_failed = local.failed if local.applicable else remote.failed
        verdict = aggregate(
            identifier,
            remote.indicators,
            local.indicators,
            remote_failed=remote.failed,
            local_failed=local_failed,
            now=now,
        )
        log.info(
            "analysis_done",
            classification=verdict.classification.value,
            risk_tier=verdict.risk_tier.value,
            indicators=verdict.indicator_texts,
            degraded=verdict.degraded,
            remote_error=remote.error_kind,
            local_error=local.error_kind,
        )
        return verdict

    def _open_http(self) -> httpx.Client:
        return build_http_client(
            self.settings.api_url,
            self.settings.user_agent,
            timeout_sec=self.settings.remote_timeout_sec,
            transport=self._transport,
        )

    def _collect_remote(self, identifier: Identifier) -> SourceOutcome:
        try:
            with self._open_http() as http:
                client = VRChatClient(
                    self.sessions,
                    http,
                    rate_limit_backoff_sec=self.settings.rate_limit_backoff_sec,
                )
                evidence = client.fetch(identifier)
        except RateLimited:
            raise
        except REMOTE_SOURCE_ERRORS as e:
            logger.warning("remote_source_failed", subject_id=identifier.value, error_kind=e.kind)
            return SourceOutcome(failed=True, error_kind=e.kind)
        except httpx.HTTPError as e:
            logger.warning("remote_source_failed", subject_id=identifier.value, error=type(e).__name__)
            return SourceOutcome(failed=True, error_kind=TransientNetworkError.kind)
        except Exception as e:
            logger.exception("remote_source_error", subject_id=identifier.value, error=str(e))
            return SourceOutcome(failed=True, error_kind="unexpected_error")
        return SourceOutcome(indicators=evaluate(evidence, self.settings.lexicon, self.rule_set))

    def _collect_local(self, identifier: Identifier, now_ts: int) -> SourceOutcome:
        if not identifier.is_user:
            # Local history is keyed by user; avatars have none
            return SourceOutcome(applicable=False)
        try:
            evidence = self.store.fetch_activity(identifier, now=now_ts)
        except NoActivity:
            return SourceOutcome(error_kind=NoActivity.kind)
        except StoreUnavailable as e:
            return SourceOutcome(failed=True, error_kind=e.kind)
        except Exception as e:
            logger.exception("local_source_error", subject_id=identifier.value, error=str(e))
            return SourceOutcome(failed=True, error_kind="unexpected_error")
        return SourceOutcome(indicators=evaluate(evidence, self.settings.lexicon, self.rule_set))


_default_analyzer: CrashGuardAnalyzer | None = None
_default_lock = threading.Lock()


def get_analyzer() -> CrashGuardAnalyzer:
    """Process-wide analyzer built from environment settings."""
    global _default_analyzer
    with _default_lock:
        if _default_analyzer is None:
            _default_analyzer = CrashGuardAnalyzer(get_settings())
        return _default_analyzer


def reset_analyzer_for_test() -> None:
    global _default_analyzer
    with _default_lock:
        _default_analyzer = None


def analyze(raw_identifier: str) -> Verdict:
    """Analyze one identifier with the process-wide analyzer."""
    return get_analyzer().analyze(raw_identifier)
