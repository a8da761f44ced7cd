"""
Analysis engine package: identifier classification, heuristics, aggregation.

Pure code: consumes Evidence records produced by the collectors, applies the
ordered rule tables, and merges indicators into an explainable Verdict.
"""

from backend_crashguard.analysis_engine.models import (
    AvatarEvidence,
    Classification,
    Identifier,
    Indicator,
    IndicatorSource,
    LocalActivityEvidence,
    LocationVisit,
    ProfileSnapshot,
    RiskTier,
    SubjectKind,
    UserEvidence,
    Verdict,
)
from backend_crashguard.analysis_engine.identifier import classify_identifier
from backend_crashguard.analysis_engine.heuristics import Lexicon, Rule, RuleSet, evaluate
from backend_crashguard.analysis_engine.aggregator import aggregate, risk_tier_for

__all__ = [
    "AvatarEvidence",
    "Classification",
    "Identifier",
    "Indicator",
    "IndicatorSource",
    "LocalActivityEvidence",
    "LocationVisit",
    "ProfileSnapshot",
    "RiskTier",
    "SubjectKind",
    "UserEvidence",
    "Verdict",
    "classify_identifier",
    "Lexicon",
    "Rule",
    "RuleSet",
    "evaluate",
    "aggregate",
    "risk_tier_for",
]
