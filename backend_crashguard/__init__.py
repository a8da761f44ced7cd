"""
Backend CrashGuard: advisory crash-risk analysis for VRChat users and avatars.

Combines the VRChat web API (profile/avatar metadata behind a login session)
with a local activity store written by a desktop client, runs a fixed rule
table over both, and returns an explainable Verdict. Modular layout: identifier
classification, remote API client, local store, heuristics, aggregation.
"""

__version__ = "0.1.0"
