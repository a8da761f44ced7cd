"""
VRChat API package: session acquisition and remote evidence collection.
"""

from backend_crashguard.vrchat_api.client import VRChatClient
from backend_crashguard.vrchat_api.http_client import build_http_client
from backend_crashguard.vrchat_api.session import Session, SessionManager

__all__ = [
    "Session",
    "SessionManager",
    "VRChatClient",
    "build_http_client",
]
