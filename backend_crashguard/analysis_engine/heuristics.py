"""
Rule-based heuristic engine for crash-risk evidence.

Each evidence type has a fixed, ordered rule table. A rule is data: a name, a
matcher that returns the matched items (empty = no match), and an indicator
template. evaluate() walks the table generically, so the lexicon and
thresholds can be swapped without touching control flow. All rules run
independently; table order only fixes indicator order.

Stateless and pure: no I/O, no logging side effects beyond debug output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from backend_crashguard.analysis_engine.models import (
    AvatarEvidence,
    Indicator,
    IndicatorSource,
    LocalActivityEvidence,
    UserEvidence,
)
from backend_crashguard.crashguard_logging import get_logger

logger = get_logger(__name__)

DEFAULT_TERMS = ("crash", "lag", "freeze", "ddos", "exploit")
DEFAULT_TROLL_TAG = "system_probable_troll"
DEFAULT_CHURN_THRESHOLD = 50
CHURN_WINDOW_SEC = 24 * 60 * 60


@dataclass(frozen=True)
class Lexicon:
    """
    Suspicion terms and thresholds. Configuration, not code.

    Terms are stored lower-cased; matching is substring on lower-cased text.
    """

    terms: tuple[str, ...] = DEFAULT_TERMS
    troll_tag: str = DEFAULT_TROLL_TAG
    churn_threshold: int = DEFAULT_CHURN_THRESHOLD
    """Visits in the last 24 hours above this fire excessive-location-churn."""

    def __post_init__(self) -> None:
        cleaned = tuple(dict.fromkeys(t.strip().lower() for t in self.terms if t and t.strip()))
        object.__setattr__(self, "terms", cleaned)
        object.__setattr__(self, "troll_tag", self.troll_tag.strip().lower())
        object.__setattr__(self, "churn_threshold", max(0, int(self.churn_threshold)))

    def matches(self, text: str | None) -> list[str]:
        """Lexicon terms found in text, in lexicon order."""
        lowered = (text or "").lower()
        if not lowered:
            return []
        return [t for t in self.terms if t in lowered]

    @classmethod
    def from_dict(cls, data: dict[str, Any], base: "Lexicon | None" = None) -> "Lexicon":
        """Override fields of base (default lexicon) from a JSON-style dict."""
        base = base or cls()
        terms = data.get("terms")
        return cls(
            terms=tuple(str(t) for t in terms) if isinstance(terms, list) and terms else base.terms,
            troll_tag=str(data.get("troll_tag") or base.troll_tag),
            churn_threshold=_threshold_or_default(data.get("churn_threshold"), base.churn_threshold),
        )


def _threshold_or_default(raw: Any, default: int) -> int:
    """Integer threshold; missing or malformed values keep default."""
    if raw is None:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning("lexicon_threshold_invalid", value=repr(raw), default=default)
        return default


Matcher = Callable[[Any, Lexicon], list[str]]


@dataclass(frozen=True)
class Rule:
    """
    Declarative rule: matcher output feeds the indicator template.

    Template placeholders: {matches} (comma-joined matched items) and
    {count} (number of matched items).
    """

    name: str
    matcher: Matcher
    template: str

    def apply(self, evidence: Any, lexicon: Lexicon, source: IndicatorSource) -> Indicator | None:
        hits = self.matcher(evidence, lexicon)
        if not hits:
            return None
        text = self.template.format(matches=", ".join(hits), count=len(hits))
        return Indicator(text=text, source=source, rule_name=self.name)


def _text_field(attr: str) -> Matcher:
    """Matcher returning lexicon terms found in one text attribute."""

    def match(evidence: Any, lexicon: Lexicon) -> list[str]:
        return lexicon.matches(getattr(evidence, attr, ""))

    return match


def _system_tag(evidence: UserEvidence, lexicon: Lexicon) -> list[str]:
    return [t for t in evidence.system_tags if t.lower() == lexicon.troll_tag]


def _suspect_tags(evidence: AvatarEvidence, lexicon: Lexicon) -> list[str]:
    """Tags containing a lexicon term, verbatim and in original order."""
    return [t for t in evidence.tags if lexicon.matches(t)]


def _suspect_visits(evidence: LocalActivityEvidence, lexicon: Lexicon) -> list[str]:
    """One entry per visit whose location name or description hits the lexicon."""
    return [
        v.location_id
        for v in evidence.recent_location_visits
        if lexicon.matches(v.name) or lexicon.matches(v.description)
    ]


def _location_churn(evidence: LocalActivityEvidence, lexicon: Lexicon) -> list[str]:
    if evidence.visits_last_24h > lexicon.churn_threshold:
        return [str(evidence.visits_last_24h)]
    return []


USER_RULES: tuple[Rule, ...] = (
    Rule("system_flagged", _system_tag, "system-flagged"),
    Rule("text_flagged_bio", _text_field("bio"), "text-flagged: bio"),
    Rule(
        "text_flagged_status_description",
        _text_field("status_description"),
        "text-flagged: statusDescription",
    ),
    Rule("name_flagged", _text_field("display_name"), "name-flagged"),
)

AVATAR_RULES: tuple[Rule, ...] = (
    Rule("avatar_name_suspect", _text_field("name"), "Name suspects: {matches}"),
    Rule("avatar_description_suspect", _text_field("description"), "Description suspects: {matches}"),
    Rule("avatar_tags_suspect", _suspect_tags, "Tags suspects: {matches}"),
)

LOCAL_RULES: tuple[Rule, ...] = (
    Rule("suspicious_location_visit", _suspect_visits, "suspicious-location-visit(count={count})"),
    Rule("excessive_location_churn", _location_churn, "excessive-location-churn"),
)


@dataclass
class RuleSet:
    """Ordered rule tables per evidence type. Extend by appending rules."""

    user: list[Rule] = field(default_factory=lambda: list(USER_RULES))
    avatar: list[Rule] = field(default_factory=lambda: list(AVATAR_RULES))
    local: list[Rule] = field(default_factory=lambda: list(LOCAL_RULES))

    def rules_for(self, evidence: Any) -> tuple[list[Rule], IndicatorSource]:
        if isinstance(evidence, UserEvidence):
            return self.user, IndicatorSource.REMOTE
        if isinstance(evidence, AvatarEvidence):
            return self.avatar, IndicatorSource.REMOTE
        if isinstance(evidence, LocalActivityEvidence):
            return self.local, IndicatorSource.LOCAL
        raise TypeError(f"no rule table for {type(evidence).__name__}")


def run_rules(
    rules: Iterable[Rule],
    evidence: Any,
    lexicon: Lexicon,
    source: IndicatorSource,
) -> list[Indicator]:
    indicators: list[Indicator] = []
    for rule in rules:
        indicator = rule.apply(evidence, lexicon, source)
        if indicator is not None:
            indicators.append(indicator)
    return indicators


def evaluate(
    evidence: UserEvidence | AvatarEvidence | LocalActivityEvidence,
    lexicon: Lexicon | None = None,
    rule_set: RuleSet | None = None,
) -> list[Indicator]:
    """
    Evaluate every rule for the evidence type, in table order.

    Returns indicators tagged remote (user/avatar) or local (activity).
    Raises TypeError for an unknown evidence type.
    """
    lex = lexicon or Lexicon()
    rules, source = (rule_set or RuleSet()).rules_for(evidence)
    indicators = run_rules(rules, evidence, lex, source)
    logger.debug(
        "heuristics_evaluated",
        evidence_type=type(evidence).__name__,
        indicators=[i.text for i in indicators],
    )
    return indicators
