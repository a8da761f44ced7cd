"""
CrashGuard analytics entry point.

analyze() classifies an identifier, collects remote and local evidence
concurrently, runs the heuristic rule tables and returns a Verdict.
"""

from backend_crashguard.analytics.analytics_pipeline import (
    CrashGuardAnalyzer,
    analyze,
    get_analyzer,
)

__all__ = [
    "CrashGuardAnalyzer",
    "analyze",
    "get_analyzer",
]
