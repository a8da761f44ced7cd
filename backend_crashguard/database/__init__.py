"""
Local activity store: read-only access to the desktop client's SQLite history.
"""

from backend_crashguard.database.activity_store import MAX_VISIT_ROWS, ActivityStore
from backend_crashguard.database.schema import create_schema

__all__ = [
    "MAX_VISIT_ROWS",
    "ActivityStore",
    "create_schema",
]
