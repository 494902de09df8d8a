import os
import asyncio
import logging
from datetime import datetime, timezone
from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from signboard.db import SessionLocal, init_db, utcnow
from signboard.api import display, media, playlist, screen, users
from signboard.services.presence import SESSIONS, active_counts_by_screen
from signboard.services.realtime import hub
from signboard.services.store import DocumentStore

init_db()

logger = logging.getLogger(__name__)

API_KEY = os.getenv("SIGNAGE_API_KEY", "").strip()
PRESENCE_SWEEP_SEC = float(os.getenv("SIGNAGE_PRESENCE_SWEEP_SEC", "5"))
QUIET_ACCESS_LOG = os.getenv("SIGNAGE_QUIET_ACCESS_LOG", "1").strip().lower() in {"1", "true", "yes", "on"}
QUIET_WEBSOCKET_LOG = os.getenv("SIGNAGE_QUIET_WEBSOCKET_LOG", "1").strip().lower() in {"1", "true", "yes", "on"}
PUBLIC_PREFIXES = ("/docs", "/openapi.json", "/redoc", "/display", "/healthz")
_presence_task: asyncio.Task | None = None

if QUIET_ACCESS_LOG:
    # Display heartbeats arrive every few seconds; keep only warnings and errors.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

if QUIET_WEBSOCKET_LOG:
    # Displays on flaky networks drop sockets constantly and reconnect on their own.
    logging.getLogger("websockets").setLevel(logging.CRITICAL)
    logging.getLogger("uvicorn.protocols.websockets").setLevel(logging.CRITICAL)


async def _presence_watcher(store: DocumentStore) -> None:
    """Publish live display counts whenever a screen gains or loses a display."""
    previous: dict[str, int] = {}
    while True:
        await asyncio.sleep(PRESENCE_SWEEP_SEC)
        try:
            sessions = await asyncio.to_thread(store.query, SESSIONS, status="open")
        except Exception as exc:
            logger.warning("Presence sweep failed: %s", exc)
            continue
        current = active_counts_by_screen(sessions, utcnow())
        changes = [
            {"screen_id": screen_id, "active": current.get(screen_id, 0)}
            for screen_id in sorted(set(previous) | set(current))
            if previous.get(screen_id, 0) != current.get(screen_id, 0)
        ]
        previous = current
        if changes:
            await hub.active_displays_changed(changes)


app = FastAPI(title="signboard")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {
        "ok": True,
        "service": "signboard",
        "time_utc": datetime.now(timezone.utc).isoformat(),
        "docs": "/docs",
    }


@app.get("/healthz")
def healthz():
    return {"ok": True, "revision": hub.revision, "realtime_clients": hub.client_count}


@app.websocket("/ws/updates")
async def ws_updates(websocket: WebSocket):
    await hub.serve(websocket)


@app.on_event("startup")
async def startup_events() -> None:
    global _presence_task
    if getattr(app.state, "store", None) is None:
        app.state.store = DocumentStore(SessionLocal)
    app.state.store.attach_loop()
    if _presence_task is None or _presence_task.done():
        _presence_task = asyncio.create_task(_presence_watcher(app.state.store))


@app.on_event("shutdown")
async def shutdown_events() -> None:
    global _presence_task
    if _presence_task is not None:
        _presence_task.cancel()
        try:
            await _presence_task
        except asyncio.CancelledError:
            pass
        _presence_task = None
    app.state.store.close()


@app.middleware("http")
async def api_key_middleware(request: Request, call_next):
    if not API_KEY:
        return await call_next(request)
    if request.url.path.startswith(PUBLIC_PREFIXES):
        return await call_next(request)
    if request.headers.get("X-API-Key") != API_KEY:
        return JSONResponse({"detail": "Unauthorized"}, status_code=401)
    return await call_next(request)


@app.middleware("http")
async def realtime_mutation_middleware(request: Request, call_next):
    response = await call_next(request)
    method = request.method.upper()
    path = request.url.path
    if response.status_code < 400 and method in {"POST", "PUT", "DELETE"}:
        if path.startswith(("/playlists", "/screens", "/media")):
            await hub.config_changed(path, method)
    return response

app.include_router(users.router)
app.include_router(media.router)
app.include_router(playlist.router)
app.include_router(screen.router)
app.include_router(display.router)
