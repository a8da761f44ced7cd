"""
Core utilities: error taxonomy shared by the collectors, the analysis
engine, and the pipeline entry point.
"""

from backend_crashguard.core.exceptions import (
    AllSourcesUnavailable,
    AuthenticationError,
    CrashGuardError,
    InvalidIdentifier,
    NoActivity,
    NotFound,
    RateLimited,
    StoreUnavailable,
    TransientNetworkError,
)

__all__ = [
    "AllSourcesUnavailable",
    "AuthenticationError",
    "CrashGuardError",
    "InvalidIdentifier",
    "NoActivity",
    "NotFound",
    "RateLimited",
    "StoreUnavailable",
    "TransientNetworkError",
]
