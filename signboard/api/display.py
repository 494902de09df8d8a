import asyncio
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder

from signboard.api.deps import get_store
from signboard.db import utcnow
from signboard.services.display import STATE_EMPTY, STATE_PLAYING, DisplayController
from signboard.services.presence import (
    SESSIONS,
    PresenceTracker,
    close_fields,
    heartbeat_fields,
    open_session_fields,
)
from signboard.services.schedule import display_now, resolve_active_sequence
from signboard.services.store import DocumentNotFound, DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["display"])


def _screen_or_404(store: DocumentStore, screen_id: str) -> dict:
    screen = store.get("screens", screen_id)
    if screen is None:
        raise HTTPException(status_code=404, detail="Screen not found")
    return screen


@router.get("/display/{screen_id}")
def resolve_display(screen_id: str, store: DocumentStore = Depends(get_store)):
    screen = _screen_or_404(store, screen_id)
    owner_id = screen["user_id"]
    now = display_now()
    items = resolve_active_sequence(
        screen,
        store.query("playlists", user_id=owner_id),
        store.query("media_items", user_id=owner_id),
        now,
    )
    return {
        "screen_id": screen_id,
        "name": screen["name"],
        "state": STATE_PLAYING if items else STATE_EMPTY,
        "items": items,
        "resolved_at": now,
    }


@router.post("/display/{screen_id}/sessions")
def open_session(screen_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    _screen_or_404(store, screen_id)
    fields = open_session_fields(screen_id, request.headers.get("User-Agent"), utcnow())
    session_id = store.create(SESSIONS, fields)
    return store.get(SESSIONS, session_id)


@router.post("/display/sessions/{session_id}/heartbeat")
def session_heartbeat(session_id: str, store: DocumentStore = Depends(get_store)):
    try:
        return store.merge_update(SESSIONS, session_id, heartbeat_fields(utcnow()))
    except DocumentNotFound as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc


@router.post("/display/sessions/{session_id}/close")
def close_session(session_id: str, store: DocumentStore = Depends(get_store)):
    try:
        return store.merge_update(SESSIONS, session_id, close_fields(utcnow()))
    except DocumentNotFound as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc


@router.websocket("/ws/display/{screen_id}")
async def display_socket(websocket: WebSocket, screen_id: str):
    store: DocumentStore = websocket.app.state.store
    await websocket.accept()

    frames: asyncio.Queue = asyncio.Queue()
    controller = DisplayController(store, screen_id, on_frame=frames.put_nowait)
    presence = PresenceTracker(store, screen_id, websocket.headers.get("user-agent"))

    async def pump_frames() -> None:
        while True:
            frame = await frames.get()
            await websocket.send_json(jsonable_encoder(frame))

    sender = asyncio.create_task(pump_frames())
    controller.start()
    await presence.start()
    try:
        while True:
            text = await websocket.receive_text()
            try:
                message = json.loads(text)
            except ValueError as exc:
                logger.warning("Display %s sent an unreadable message: %s", screen_id, exc)
                continue
            event = message.get("event") if isinstance(message, dict) else None
            if event == "ended":
                controller.advance_now()
            elif event == "error":
                controller.on_media_error()
    except WebSocketDisconnect:
        pass
    finally:
        controller.close()
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            logger.debug("Display %s frame pump ended: %s", screen_id, exc)
        await presence.stop()
