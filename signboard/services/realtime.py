import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)

HELLO = "hello"
CONFIG_CHANGED = "config_changed"
ACTIVE_DISPLAYS_CHANGED = "active_displays_changed"


class RealtimeHub:
    """
    Pushes admin change events to every ``/ws/updates`` client.

    Two kinds of event go out: ``config_changed`` after a media, playlist or
    screen edit, and ``active_displays_changed`` when the presence sweep sees a
    screen gain or lose live displays. Each event bumps ``revision`` so a
    client that reconnects can tell whether it missed anything.
    """

    def __init__(self) -> None:
        self._clients: dict[WebSocket, datetime] = {}
        self._lock = asyncio.Lock()
        self._revision = 0

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def serve(self, websocket: WebSocket) -> None:
        """Hold one admin socket open until the client goes away."""
        await websocket.accept()
        async with self._lock:
            self._clients[websocket] = datetime.now(timezone.utc)
        try:
            await websocket.send_json(self._envelope(HELLO, self._revision, {"clients": self.client_count}))
            while True:
                # Admin clients only listen; anything they send is ignored.
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            async with self._lock:
                self._clients.pop(websocket, None)

    async def config_changed(self, path: str, method: str) -> int:
        return await self.publish(CONFIG_CHANGED, {"path": path, "method": method})

    async def active_displays_changed(self, changes: list[dict[str, Any]]) -> int:
        return await self.publish(ACTIVE_DISPLAYS_CHANGED, {"changes": changes})

    async def publish(self, event_type: str, payload: dict[str, Any]) -> int:
        self._revision += 1
        message = self._envelope(event_type, self._revision, payload)
        async with self._lock:
            clients = list(self._clients)

        failed = []
        for client in clients:
            try:
                await client.send_json(message)
            except Exception as exc:
                logger.debug("Dropping admin socket after %s failed: %s", event_type, exc)
                failed.append(client)

        if failed:
            async with self._lock:
                for client in failed:
                    self._clients.pop(client, None)
        return self._revision

    @staticmethod
    def _envelope(event_type: str, revision: int, payload: dict[str, Any]) -> dict[str, Any]:
        return jsonable_encoder(
            {
                "type": event_type,
                "revision": revision,
                "payload": payload,
                "ts": datetime.now(timezone.utc),
            }
        )


hub = RealtimeHub()
