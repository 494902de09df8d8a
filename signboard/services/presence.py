import asyncio
import logging
import os
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Iterable

from sqlalchemy.exc import SQLAlchemyError

from signboard.db import utcnow
from signboard.services.store import DocumentNotFound, DocumentStore

logger = logging.getLogger(__name__)

SESSIONS = "display_sessions"
HEARTBEAT_INTERVAL_SEC = float(os.getenv("SIGNAGE_HEARTBEAT_INTERVAL_SEC", "15"))
SESSION_STALE_AFTER_SEC = float(os.getenv("SIGNAGE_SESSION_STALE_AFTER_SEC", "45"))


def open_session_fields(screen_id: str, user_agent: str | None, now: datetime) -> dict[str, Any]:
    return {
        "screen_id": screen_id,
        "status": "open",
        "started_at": now,
        "updated_at": now,
        "user_agent": user_agent or "",
    }


def heartbeat_fields(now: datetime) -> dict[str, Any]:
    return {"updated_at": now, "status": "open"}


def close_fields(now: datetime) -> dict[str, Any]:
    return {"status": "closed", "closed_at": now, "updated_at": now}


def is_session_active(session: dict[str, Any], now: datetime) -> bool:
    if session.get("status") != "open":
        return False
    updated_at = session.get("updated_at")
    if updated_at is None:
        return False
    return (now - updated_at).total_seconds() <= SESSION_STALE_AFTER_SEC


def active_counts_by_screen(sessions: Iterable[dict[str, Any]], now: datetime) -> dict[str, int]:
    counts = Counter(s["screen_id"] for s in sessions if is_session_active(s, now))
    return dict(counts)


def count_active_sessions(store: DocumentStore, screen_id: str, now: datetime | None = None) -> int:
    sessions = store.query(SESSIONS, screen_id=screen_id, status="open")
    current = now or utcnow()
    return sum(1 for session in sessions if is_session_active(session, current))


class PresenceTracker:
    """Keeps one display session alive for as long as a display is mounted."""

    def __init__(
        self,
        store: DocumentStore,
        screen_id: str,
        user_agent: str | None = None,
        interval_sec: float = HEARTBEAT_INTERVAL_SEC,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._screen_id = screen_id
        self._user_agent = user_agent
        self._interval_sec = interval_sec
        self._clock = clock
        self._task: asyncio.Task | None = None
        self._inflight: asyncio.Future | None = None
        self.session_id: str | None = None

    async def start(self) -> None:
        fields = open_session_fields(self._screen_id, self._user_agent, self._clock())
        try:
            self.session_id = await self._store.acreate(SESSIONS, fields)
        except SQLAlchemyError as exc:
            logger.warning("Could not open display session for screen %s: %s", self._screen_id, exc)
            return
        self._task = asyncio.create_task(self._heartbeat_loop())

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval_sec)
            # Shielded so teardown can wait for a write already handed to the store.
            self._inflight = asyncio.ensure_future(self.beat())
            await asyncio.shield(self._inflight)

    async def beat(self) -> None:
        if self.session_id is None:
            return
        try:
            await self._store.amerge_update(SESSIONS, self.session_id, heartbeat_fields(self._clock()))
        except (SQLAlchemyError, DocumentNotFound) as exc:
            logger.warning("Heartbeat for session %s failed: %s", self.session_id, exc)

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._inflight is not None:
            await self._inflight
            self._inflight = None
        if self.session_id is None:
            return
        try:
            await self._store.amerge_update(SESSIONS, self.session_id, close_fields(self._clock()))
        except (SQLAlchemyError, DocumentNotFound) as exc:
            logger.warning("Closing session %s failed: %s", self.session_id, exc)
