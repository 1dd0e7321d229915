"""Copy the caller's HTTP credential into ``tools/call`` arguments.

Clients that cannot set tool arguments themselves authenticate with the
``Authorization`` (or ``X-MCP-Proxy-Auth``) header instead. The relay moves
that value into ``params.arguments.authorization`` so the tool invoker sends
it upstream in place of the server's default credential.
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional

__all__ = ["CREDENTIAL_HEADERS", "extract_header_credential", "relay_credentials"]

CREDENTIAL_HEADERS = ("authorization", "x-mcp-proxy-auth")

_BEARER = re.compile(r"^bearer(?:\s+|$)", re.IGNORECASE)


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is not None:
        return value
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def extract_header_credential(headers: Mapping[str, str]) -> Optional[str]:
    """First non-empty credential header with any ``Bearer`` prefix removed."""
    for name in CREDENTIAL_HEADERS:
        value = _header(headers, name)
        if not value:
            continue
        token = _BEARER.sub("", value.strip()).strip()
        if token:
            return token
    return None


def relay_credentials(message: Any, headers: Mapping[str, str]) -> Any:
    """Return ``message`` with the header credential injected, if it applies.

    Only ``tools/call`` requests whose arguments carry no ``authorization`` are
    touched. The input is never mutated.
    """
    if not isinstance(message, dict) or message.get("method") != "tools/call":
        return message
    params = message.get("params")
    if not isinstance(params, dict):
        return message
    arguments = params.get("arguments")
    if arguments is not None and not isinstance(arguments, dict):
        return message
    if arguments and arguments.get("authorization"):
        return message

    token = extract_header_credential(headers)
    if token is None:
        return message
    return {
        **message,
        "params": {**params, "arguments": {**(arguments or {}), "authorization": token}},
    }
