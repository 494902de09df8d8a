import asyncio
import logging
from typing import Any, Callable

from signboard.services.schedule import sequence_ids

logger = logging.getLogger(__name__)

FADE_DURATION_SEC = 0.5
DEFAULT_IMAGE_DURATION_SEC = 5


class PlaybackSequencer:
    """
    Cursor over the active sequence.

    Images advance after their own duration, videos when the player reports
    the end of playback or an error. Every advance fades out first, then
    moves to the next index, wrapping to the start.
    """

    def __init__(
        self,
        on_change: Callable[["PlaybackSequencer"], None] | None = None,
        fade_sec: float = FADE_DURATION_SEC,
        call_later: Callable[..., Any] | None = None,
    ) -> None:
        self._on_change = on_change
        self._fade_sec = fade_sec
        self._call_later = call_later
        self._items: list[dict[str, Any]] = []
        self._index = 0
        self._fading = False
        self._advance_handle = None
        self._fade_handle = None
        self._closed = False

    @property
    def items(self) -> list[dict[str, Any]]:
        return list(self._items)

    @property
    def index(self) -> int:
        return self._index

    @property
    def fading(self) -> bool:
        return self._fading

    @property
    def current_item(self) -> dict[str, Any] | None:
        if not self._items:
            return None
        return self._items[self._index]

    def load(self, items: list[dict[str, Any]]) -> bool:
        """Swap in a new sequence. Returns False when the ids are unchanged and playback continues."""
        if self._closed:
            return False
        if sequence_ids(items) == sequence_ids(self._items):
            return False
        self._cancel_timers()
        self._items = list(items)
        self._index = 0
        self._fading = False
        self._arm()
        self._emit()
        return True

    def advance_now(self) -> None:
        if self._closed or len(self._items) <= 1 or self._fading:
            return
        self._cancel_timers()
        self._begin_fade()

    def on_media_error(self) -> None:
        item = self.current_item
        logger.warning("Failed to load media %s", item.get("url") if item else None)
        self.advance_now()

    def close(self) -> None:
        self._closed = True
        self._cancel_timers()

    def _schedule(self, delay: float, callback: Callable[[], None]):
        if self._call_later is not None:
            return self._call_later(delay, callback)
        return asyncio.get_running_loop().call_later(delay, callback)

    def _arm(self) -> None:
        item = self.current_item
        if item is None or len(self._items) <= 1:
            return
        if item.get("type") == "image":
            duration = item.get("duration") or DEFAULT_IMAGE_DURATION_SEC
            self._advance_handle = self._schedule(duration, self._begin_fade)

    def _begin_fade(self) -> None:
        self._advance_handle = None
        self._fading = True
        self._emit()
        self._fade_handle = self._schedule(self._fade_sec, self._finish_advance)

    def _finish_advance(self) -> None:
        self._fade_handle = None
        if self._closed or not self._items:
            return
        self._index = (self._index + 1) % len(self._items)
        self._fading = False
        self._arm()
        self._emit()

    def _cancel_timers(self) -> None:
        for handle in (self._advance_handle, self._fade_handle):
            if handle is not None:
                handle.cancel()
        self._advance_handle = None
        self._fade_handle = None

    def _emit(self) -> None:
        if self._on_change is not None:
            self._on_change(self)
