import asyncio
import logging
from datetime import datetime
from typing import Any, Callable

from signboard.services.playback import PlaybackSequencer
from signboard.services.schedule import SCHEDULE_POLL_SEC, display_now, resolve_active_sequence
from signboard.services.store import DocumentSnapshot, DocumentStore, Subscription

logger = logging.getLogger(__name__)

STATE_LOADING = "loading"
STATE_NOT_FOUND = "not_found"
STATE_EMPTY = "empty"
STATE_PLAYING = "playing"


class DisplayController:
    """
    Drives one display: watches the screen, its owner's playlists and media,
    resolves the active sequence and plays it.

    The three live queries arrive in any order; nothing is resolved until
    each has delivered at least once.
    """

    def __init__(
        self,
        store: DocumentStore,
        screen_id: str,
        on_frame: Callable[[dict[str, Any]], None] | None = None,
        poll_sec: float = SCHEDULE_POLL_SEC,
        now: Callable[[], datetime] | None = None,
        call_later: Callable[..., Any] | None = None,
    ) -> None:
        self._store = store
        self.screen_id = screen_id
        self._on_frame = on_frame
        self._poll_sec = poll_sec
        self._now = now or display_now
        self._sequencer = PlaybackSequencer(on_change=lambda _: self._emit_if_changed(), call_later=call_later)
        self._state = STATE_LOADING
        self._screen: dict[str, Any] | None = None
        self._owner_id: str | None = None
        self._playlists: list[dict[str, Any]] | None = None
        self._media_items: list[dict[str, Any]] | None = None
        self._screen_sub: Subscription | None = None
        self._owner_subs: list[Subscription] = []
        self._poll_task: asyncio.Task | None = None
        self._last_frame: dict[str, Any] | None = None

    @property
    def state(self) -> str:
        return self._state

    @property
    def sequencer(self) -> PlaybackSequencer:
        return self._sequencer

    def start(self) -> None:
        self._screen_sub = self._store.subscribe_document("screens", self.screen_id, self._on_screen, self._on_error)
        self._poll_task = asyncio.create_task(self._poll_loop())

    def close(self) -> None:
        if self._screen_sub is not None:
            self._screen_sub.cancel()
            self._screen_sub = None
        self._drop_owner_subscriptions()
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
        self._sequencer.close()

    def advance_now(self) -> None:
        self._sequencer.advance_now()

    def on_media_error(self) -> None:
        self._sequencer.on_media_error()

    def frame(self) -> dict[str, Any]:
        return {
            "screen_id": self.screen_id,
            "name": self._screen.get("name") if self._screen else None,
            "state": self._state,
            "item": self._sequencer.current_item if self._state == STATE_PLAYING else None,
            "index": self._sequencer.index,
            "fading": self._sequencer.fading,
            "length": len(self._sequencer.items),
        }

    def refresh(self) -> None:
        if self._screen is None or self._playlists is None or self._media_items is None:
            return
        items = resolve_active_sequence(self._screen, self._playlists, self._media_items, self._now())
        self._state = STATE_PLAYING if items else STATE_EMPTY
        self._sequencer.load(items)
        self._emit_if_changed()

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_sec)
            self.refresh()

    def _on_screen(self, snapshot: DocumentSnapshot) -> None:
        if not snapshot.exists:
            self._screen = None
            self._owner_id = None
            self._drop_owner_subscriptions()
            self._state = STATE_NOT_FOUND
            self._sequencer.load([])
            self._emit_if_changed()
            return

        self._screen = snapshot.data
        owner_id = snapshot.data["user_id"]
        if owner_id != self._owner_id:
            self._drop_owner_subscriptions()
            self._owner_id = owner_id
            self._state = STATE_LOADING
            self._owner_subs = [
                self._store.subscribe_query("playlists", {"user_id": owner_id}, self._on_playlists, self._on_error),
                self._store.subscribe_query("media_items", {"user_id": owner_id}, self._on_media_items, self._on_error),
            ]
            self._emit_if_changed()
        self.refresh()

    def _on_playlists(self, documents: list[dict[str, Any]]) -> None:
        self._playlists = documents
        self.refresh()

    def _on_media_items(self, documents: list[dict[str, Any]]) -> None:
        self._media_items = documents
        self.refresh()

    def _on_error(self, exc: Exception) -> None:
        # The display keeps its last state; a failed read just stalls it.
        logger.error("Display %s lost a live query: %s", self.screen_id, exc)

    def _drop_owner_subscriptions(self) -> None:
        for subscription in self._owner_subs:
            subscription.cancel()
        self._owner_subs = []
        self._playlists = None
        self._media_items = None

    def _emit_if_changed(self) -> None:
        frame = self.frame()
        if frame == self._last_frame:
            return
        self._last_frame = frame
        if self._on_frame is not None:
            self._on_frame(frame)
