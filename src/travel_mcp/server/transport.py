"""Per-session streamable-HTTP transports for the MCP server.

:class:`SessionTransportManager` is an ASGI-level dispatcher in the spirit of
the SDK's ``StreamableHTTPSessionManager``. It also enforces session expiry,
rejects requests that carry no usable session, and relays header
credentials into ``tools/call`` payloads before the transport sees them.

Lifecycle of one session::

    POST initialize (no id)  -> new transport, server.run() started
    2xx response started     -> id stored, returned in ``mcp-session-id``
    requests with that id    -> forwarded to the bound transport
    DELETE / expiry / exit   -> transport terminated, id removed
"""

from __future__ import annotations

import contextlib
import json
from typing import Any, AsyncIterator, List, Optional
from uuid import uuid4

import anyio
from anyio.abc import TaskGroup, TaskStatus
from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.streamable_http import StreamableHTTPServerTransport
from mcp.server.transport_security import TransportSecuritySettings
from pydantic import ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import Message, Receive, Scope, Send

from travel_mcp.errors import log_exception
from travel_mcp.logging import get_logger

from .relay import relay_credentials
from .sessions import SessionRecord, SessionStore

__all__ = [
    "MCP_SESSION_ID_HEADER",
    "SessionTransportManager",
    "build_security_settings",
    "expand_allowed_hosts",
    "host_allowed",
    "is_initialize_request",
    "normalize_session_id",
]

logger = get_logger("server.transport")

MCP_SESSION_ID_HEADER = "mcp-session-id"

NO_SESSION_MESSAGE = "Bad Request: No valid session ID provided"


class _BodyTooLarge(Exception):
    pass


def normalize_session_id(raw: Optional[str]) -> Optional[str]:
    """First value of a possibly repeated or comma-joined session header."""
    if not raw:
        return None
    first = raw.split(",", 1)[0].strip()
    return first or None


def is_initialize_request(message: Any) -> bool:
    if not isinstance(message, dict) or message.get("method") != "initialize":
        return False
    try:
        types.JSONRPCRequest.model_validate(message)
        types.InitializeRequestParams.model_validate(message.get("params") or {})
    except ValidationError:
        return False
    return True


def expand_allowed_hosts(allowed_hosts: List[str]) -> List[str]:
    """Host patterns where a bare host ``h`` matches any port (``h`` and ``h:*``)."""
    hosts: List[str] = []
    for host in allowed_hosts:
        hosts.append(host)
        if ":" not in host:
            hosts.append(f"{host}:*")
    return hosts


def host_allowed(host: Optional[str], patterns: List[str]) -> bool:
    if not host:
        return False
    for pattern in patterns:
        if pattern == host:
            return True
        if pattern.endswith(":*") and host.startswith(pattern[:-1]):
            return True
    return False


def build_security_settings(
    allowed_hosts: Optional[List[str]],
    cors_origins: Optional[List[str]] = None,
) -> TransportSecuritySettings:
    """DNS-rebinding settings for the SDK transport.

    The SDK checks Host and Origin together, so it is enabled only for an
    explicit origin allowlist. With ``*`` (or no list) every origin is
    accepted and :class:`SessionTransportManager` checks the Host header
    itself. ``None`` hosts disables both checks.
    """
    origins = list(cors_origins or [])
    if allowed_hosts is None or not origins or "*" in origins:
        return TransportSecuritySettings(enable_dns_rebinding_protection=False)
    return TransportSecuritySettings(
        enable_dns_rebinding_protection=True,
        allowed_hosts=expand_allowed_hosts(allowed_hosts),
        allowed_origins=origins,
    )


def _jsonrpc_error(code: int, message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        {"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": None},
        status_code=status_code,
    )


def _replay_receive(body: bytes, receive: Receive) -> Receive:
    """Serve an already-read body once, then defer to the real ``receive``."""
    sent = False

    async def replay() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


def _replace_header(scope: Scope, name: bytes, value: Optional[str] = None) -> Scope:
    """Copy of ``scope`` with header ``name`` removed, or set to ``value``."""
    headers = [(k, v) for k, v in scope.get("headers", []) if k.lower() != name]
    if value is not None:
        headers.append((name, value.encode("latin-1")))
    return {**scope, "headers": headers}


class SessionTransportManager:
    """Routes ``/mcp`` requests to per-session transports.

    Must be running (``async with manager.run():``) before requests arrive.

    Args:
        server: Low-level MCP server shared by every session.
        store: Session table. Its ``on_evict`` hook is taken over by the manager.
        json_response: Answer POSTs with JSON instead of an SSE stream.
        security_settings: DNS-rebinding settings passed to every transport.
        max_body_bytes: Largest POST body accepted.
        sweep_interval: Seconds between expiry sweeps; ``0`` disables the sweep.
        allowed_hosts: Host header allowlist checked before dispatch; ``None``
            accepts any host.
    """

    def __init__(
        self,
        server: Server,
        store: SessionStore,
        *,
        json_response: bool = False,
        security_settings: Optional[TransportSecuritySettings] = None,
        max_body_bytes: int = 1024 * 1024,
        sweep_interval: float = 60.0,
        allowed_hosts: Optional[List[str]] = None,
    ) -> None:
        self.server = server
        self.store = store
        self.json_response = json_response
        self.security_settings = security_settings
        self.max_body_bytes = max_body_bytes
        self.sweep_interval = sweep_interval
        self._host_patterns = expand_allowed_hosts(allowed_hosts) if allowed_hosts is not None else None
        self._task_group: Optional[TaskGroup] = None
        store.on_evict = self._schedule_terminate

    @property
    def running(self) -> bool:
        return self._task_group is not None

    @contextlib.asynccontextmanager
    async def run(self) -> AsyncIterator[None]:
        if self._task_group is not None:
            raise RuntimeError("SessionTransportManager is already running")
        async with anyio.create_task_group() as tg:
            self._task_group = tg
            if self.sweep_interval > 0:
                tg.start_soon(self._sweep_loop)
            logger.info("Session manager started", sweep_interval=self.sweep_interval)
            try:
                yield
            finally:
                for record in self.store.clear():
                    await self._terminate(record)
                tg.cancel_scope.cancel()
                self._task_group = None
                logger.info("Session manager stopped")

    # -------- ASGI entry --------

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        if self._task_group is None:
            raise RuntimeError("Session manager is not running; use `async with manager.run()`")

        request = Request(scope, receive)
        if self._host_patterns is not None and not host_allowed(request.headers.get("host"), self._host_patterns):
            logger.warning("Rejected request with invalid Host header", host=request.headers.get("host"))
            await Response("Invalid Host header", status_code=421)(scope, receive, send)
            return

        session_id = normalize_session_id(request.headers.get(MCP_SESSION_ID_HEADER))
        record = self.store.get(session_id) if session_id else None

        message: Any = None
        parsed = False
        if request.method == "POST":
            try:
                raw = await self._read_body(request)
            except _BodyTooLarge:
                response = _jsonrpc_error(
                    -32600, f"Request body exceeds {self.max_body_bytes} bytes", 413
                )
                await response(scope, receive, send)
                return

            try:
                message = json.loads(raw) if raw else None
                parsed = raw != b""
            except ValueError:
                message = None

            if parsed:
                relayed = relay_credentials(message, request.headers)
                if relayed is not message:
                    raw = json.dumps(relayed).encode("utf-8")
                    scope = _replace_header(scope, b"content-length", str(len(raw)))
                    message = relayed
            receive = _replay_receive(raw, receive)

            if record is None and not parsed:
                response = _jsonrpc_error(-32700, "Parse error: Invalid JSON", 400)
                await response(scope, receive, send)
                return

        if record is not None:
            await self._forward(record.transport, scope, receive, send)
            return

        if request.method == "POST" and is_initialize_request(message):
            await self._start_session(scope, receive, send)
            return

        logger.debug(
            "Rejected request without a valid session",
            method=request.method,
            session_id=session_id,
        )
        await _jsonrpc_error(-32000, NO_SESSION_MESSAGE, 400)(scope, receive, send)

    # -------- sessions --------

    async def _start_session(self, scope: Scope, receive: Receive, send: Send) -> None:
        if self._task_group is None:
            raise RuntimeError("Session manager is not running")
        session_id = uuid4().hex
        transport = StreamableHTTPServerTransport(
            mcp_session_id=session_id,
            is_json_response_enabled=self.json_response,
            event_store=None,
            security_settings=self.security_settings,
        )
        await self._task_group.start(self._run_session, transport)
        # A stale id from an expired session would make the new transport answer 404.
        scope = _replace_header(scope, MCP_SESSION_ID_HEADER.encode("latin-1"))

        async def send_and_register(message: Message) -> None:
            if (
                message["type"] == "http.response.start"
                and 200 <= message["status"] < 300
                and session_id not in self.store
            ):
                self.store.add(session_id, transport)
                logger.info("Session initialized", session_id=session_id)
            await send(message)

        await self._forward(transport, scope, receive, send_and_register)

        if session_id not in self.store and not transport.is_terminated:
            logger.debug("Initialize was not acknowledged; dropping transport", session_id=session_id)
            await transport.terminate()

    async def _run_session(
        self,
        transport: StreamableHTTPServerTransport,
        *,
        task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        session_id = transport.mcp_session_id
        try:
            async with transport.connect() as streams:
                read_stream, write_stream = streams
                task_status.started()
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        except Exception as e:
            log_exception(logger.logger, f"Session {session_id} crashed", e, level="error")
        finally:
            if session_id is not None and self.store.remove(session_id) is not None:
                logger.info("Session closed", session_id=session_id)

    async def _forward(
        self,
        transport: StreamableHTTPServerTransport,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        started = False

        async def tracking_send(message: Message) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await transport.handle_request(scope, receive, tracking_send)
        except Exception as e:
            log_exception(
                logger.logger,
                f"MCP transport error (session {transport.mcp_session_id})",
                e,
                level="error",
            )
            if not started:
                response = JSONResponse(
                    {"error": "MCP transport error", "message": str(e)},
                    status_code=500,
                )
                await response(scope, receive, send)

    # -------- expiry --------

    def _schedule_terminate(self, record: SessionRecord) -> None:
        if self._task_group is not None:
            self._task_group.start_soon(self._terminate, record)

    async def _terminate(self, record: SessionRecord) -> None:
        transport = record.transport
        if getattr(transport, "is_terminated", False):
            return
        await transport.terminate()

    async def _sweep_loop(self) -> None:
        while True:
            await anyio.sleep(self.sweep_interval)
            expired = self.store.evict_expired()
            if expired:
                logger.info("Swept expired sessions", count=len(expired), remaining=len(self.store))

    # -------- helpers --------

    async def _read_body(self, request: Request) -> bytes:
        chunks = []
        size = 0
        async for chunk in request.stream():
            size += len(chunk)
            if size > self.max_body_bytes:
                raise _BodyTooLarge()
            chunks.append(chunk)
        return b"".join(chunks)


class MCPEndpoint:
    """ASGI app handed to the ``/mcp`` route."""

    def __init__(self, manager: SessionTransportManager) -> None:
        self.manager = manager

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.manager.handle_request(scope, receive, send)
