"""
Risk aggregator: merge remote and local indicators into one Verdict.

Risk tier: 0 indicators -> LOW, 1-2 -> MEDIUM, 3+ -> HIGH.
Classification: clean when no indicators, otherwise client-crash-suspect for
users and avatar-crash-suspect for avatars. degraded is set when exactly one
source failed; both failing raises AllSourcesUnavailable.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from backend_crashguard.analysis_engine.models import (
    Classification,
    Identifier,
    Indicator,
    IndicatorSource,
    RiskTier,
    SubjectKind,
    Verdict,
)
from backend_crashguard.core.exceptions import AllSourcesUnavailable
from backend_crashguard.crashguard_logging import get_logger

logger = get_logger(__name__)

MEDIUM_MIN_INDICATORS = 1
HIGH_MIN_INDICATORS = 3
RATIONALE_MAX_INDICATORS = 5

SUSPECT_CLASSIFICATION = {
    SubjectKind.USER: Classification.CLIENT_CRASH_SUSPECT,
    SubjectKind.AVATAR: Classification.AVATAR_CRASH_SUSPECT,
}


def risk_tier_for(count: int) -> RiskTier:
    """Monotonic tier from indicator count."""
    if count >= HIGH_MIN_INDICATORS:
        return RiskTier.HIGH
    if count >= MEDIUM_MIN_INDICATORS:
        return RiskTier.MEDIUM
    return RiskTier.LOW


def build_rationale(
    subject_id: str,
    indicators: Sequence[Indicator],
    failed_sources: Sequence[IndicatorSource] = (),
) -> str:
    """Templated summary: count, first five indicators verbatim, degradation note."""
    count = len(indicators)
    if count == 0:
        text = f"No indicators matched for {subject_id}."
    else:
        shown = "; ".join(i.text for i in indicators[:RATIONALE_MAX_INDICATORS])
        noun = "indicator" if count == 1 else "indicators"
        text = f"{count} {noun} matched for {subject_id}: {shown}"
        if count > RATIONALE_MAX_INDICATORS:
            text += f" (+{count - RATIONALE_MAX_INDICATORS} more)"
        text += "."
    for source in failed_sources:
        text += f" Degraded: {source.value} evidence unavailable."
    return text


def aggregate(
    subject: Identifier,
    remote_indicators: Sequence[Indicator],
    local_indicators: Sequence[Indicator],
    remote_failed: bool,
    local_failed: bool,
    now: datetime | None = None,
) -> Verdict:
    """
    Merge indicators (remote first, then local) into a Verdict.

    Raises AllSourcesUnavailable only if both sources failed.
    """
    if remote_failed and local_failed:
        logger.warning("aggregate_all_sources_failed", subject_id=subject.value)
        raise AllSourcesUnavailable("no evidence source available")

    failed: list[IndicatorSource] = []
    if remote_failed:
        failed.append(IndicatorSource.REMOTE)
    if local_failed:
        failed.append(IndicatorSource.LOCAL)

    indicators = list(remote_indicators) + list(local_indicators)
    count = len(indicators)
    classification = Classification.CLEAN if count == 0 else SUSPECT_CLASSIFICATION[subject.kind]
    verdict = Verdict(
        subject_id=subject.value,
        classification=classification,
        risk_tier=risk_tier_for(count),
        indicators=indicators,
        rationale=build_rationale(subject.value, indicators, failed),
        produced_at=now or datetime.now(timezone.utc),
        degraded=bool(failed),
        failed_sources=failed,
    )
    logger.debug(
        "aggregate_result",
        subject_id=subject.value,
        classification=classification.value,
        risk_tier=verdict.risk_tier.value,
        degraded=verdict.degraded,
    )
    return verdict
