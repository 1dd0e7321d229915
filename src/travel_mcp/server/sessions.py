"""In-memory session table with TTL eviction.

The store is synchronous and knows nothing about transports beyond holding a
reference. Eviction hands each expired record to ``on_evict`` so the caller
can terminate its transport.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from travel_mcp.logging import get_logger

__all__ = ["SessionRecord", "SessionStore"]

logger = get_logger("server.sessions")


@dataclass
class SessionRecord:
    session_id: str
    transport: Any
    created_at: float
    last_seen: float


class SessionStore:
    """Session id -> :class:`SessionRecord`.

    Args:
        ttl: Lifetime in seconds. ``0`` disables expiry.
        renew_on_access: Measure the TTL from the last lookup instead of creation.
        clock: Monotonic time source, replaceable in tests.
        on_evict: Called with each record removed because it expired.
    """

    def __init__(
        self,
        *,
        ttl: float = 3600.0,
        renew_on_access: bool = False,
        clock: Callable[[], float] = time.monotonic,
        on_evict: Optional[Callable[[SessionRecord], None]] = None,
    ) -> None:
        self.ttl = ttl
        self.renew_on_access = renew_on_access
        self.on_evict = on_evict
        self._clock = clock
        self._records: Dict[str, SessionRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._records

    def add(self, session_id: str, transport: Any) -> SessionRecord:
        now = self._clock()
        record = SessionRecord(session_id=session_id, transport=transport, created_at=now, last_seen=now)
        self._records[session_id] = record
        return record

    def is_expired(self, record: SessionRecord, now: Optional[float] = None) -> bool:
        if self.ttl <= 0:
            return False
        now = self._clock() if now is None else now
        start = record.last_seen if self.renew_on_access else record.created_at
        return now - start >= self.ttl

    def get(self, session_id: str) -> Optional[SessionRecord]:
        """Live record for ``session_id``; an expired one is evicted and ``None`` returned."""
        record = self._records.get(session_id)
        if record is None:
            return None
        now = self._clock()
        if self.is_expired(record, now):
            self._evict(record)
            return None
        record.last_seen = now
        return record

    def remove(self, session_id: str) -> Optional[SessionRecord]:
        return self._records.pop(session_id, None)

    def evict_expired(self) -> List[SessionRecord]:
        now = self._clock()
        expired = [r for r in self._records.values() if self.is_expired(r, now)]
        for record in expired:
            self._evict(record)
        return expired

    def clear(self) -> List[SessionRecord]:
        records = list(self._records.values())
        self._records.clear()
        return records

    def _evict(self, record: SessionRecord) -> None:
        self._records.pop(record.session_id, None)
        logger.info("Session expired", session_id=record.session_id)
        if self.on_evict is not None:
            self.on_evict(record)
