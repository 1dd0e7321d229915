from .app import build_registry, create_app
from .mcp import build_mcp_server
from .relay import extract_header_credential, relay_credentials
from .sessions import SessionRecord, SessionStore
from .transport import SessionTransportManager, build_security_settings

__all__ = [
    "build_registry",
    "create_app",
    "build_mcp_server",
    "extract_header_credential",
    "relay_credentials",
    "SessionRecord",
    "SessionStore",
    "SessionTransportManager",
    "build_security_settings",
]
