"""
Structured logging for the CrashGuard backend.

JSON logs with timestamp, subject_id, event_type and indicator lists.
Use get_logger() in all modules for aggregation-friendly output.
"""

from backend_crashguard.crashguard_logging.logger import bind_subject, get_logger

__all__ = ["bind_subject", "get_logger"]
