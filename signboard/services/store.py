"""
SQLAlchemy-backed document store with live subscriptions.

Documents are plain dicts keyed by column name, each carrying its ``id``.
Subscribers receive an initial snapshot and a fresh one after every write
that touches their collection (or their document). When an event loop is
attached, callbacks always run on that loop, so consumers never see a
callback from a worker thread.
"""
import asyncio
import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from signboard.db import SessionLocal
from signboard.models.display_session import DisplaySession
from signboard.models.media import MediaItem
from signboard.models.playlist import Playlist
from signboard.models.screen import Screen
from signboard.models.user import User

logger = logging.getLogger(__name__)

COLLECTIONS = {
    "users": User,
    "media_items": MediaItem,
    "playlists": Playlist,
    "screens": Screen,
    "display_sessions": DisplaySession,
}


class StoreError(Exception):
    pass


class UnknownCollection(StoreError):
    pass


class DocumentNotFound(StoreError):
    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"{collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id


@dataclass
class DocumentSnapshot:
    id: str
    exists: bool
    data: dict[str, Any] | None = None


class Subscription:
    """Cancellation handle returned by the subscribe calls."""

    def __init__(
        self,
        store: "DocumentStore",
        collection: str,
        on_snapshot: Callable[[Any], None],
        on_error: Callable[[Exception], None] | None = None,
        doc_id: str | None = None,
        filters: dict[str, Any] | None = None,
    ) -> None:
        self._store = store
        self.collection = collection
        self.doc_id = doc_id
        self.filters = dict(filters or {})
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def matches(self, collection: str, doc_id: str) -> bool:
        if collection != self.collection:
            return False
        return self.doc_id is None or self.doc_id == doc_id

    def cancel(self) -> None:
        self._active = False
        self._store._unsubscribe(self)


def _to_document(row) -> dict[str, Any]:
    return {column.name: getattr(row, column.name) for column in row.__table__.columns}


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class DocumentStore:
    def __init__(self, session_factory: sessionmaker = SessionLocal) -> None:
        self._session_factory = session_factory
        self._lock = threading.RLock()
        self._subscriptions: list[Subscription] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    # -- lifecycle ---------------------------------------------------------

    def attach_loop(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    def close(self) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.cancel()
        self._loop = None

    # -- reads -------------------------------------------------------------

    def _model(self, collection: str):
        model = COLLECTIONS.get(collection)
        if model is None:
            raise UnknownCollection(f"Unknown collection: {collection}")
        return model

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        model = self._model(collection)
        with self._lock, self._session_factory() as db:
            row = db.get(model, doc_id)
            return _to_document(row) if row is not None else None

    def query(self, collection: str, **filters: Any) -> list[dict[str, Any]]:
        model = self._model(collection)
        columns = model.__table__.columns
        unknown = [name for name in filters if name not in columns]
        if unknown:
            raise ValueError(f"Unknown field(s) for {collection}: {', '.join(sorted(unknown))}")
        with self._lock, self._session_factory() as db:
            rows = db.query(model).filter_by(**filters).all()
            return [_to_document(row) for row in rows]

    # -- writes ------------------------------------------------------------

    def create(self, collection: str, fields: dict[str, Any]) -> str:
        model = self._model(collection)
        values = {key: value for key, value in fields.items() if key in model.__table__.columns}
        values.setdefault("id", str(uuid.uuid4()))
        with self._lock, self._session_factory() as db:
            db.add(model(**values))
            db.commit()
        self._notify(collection, values["id"])
        return values["id"]

    def merge_update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        model = self._model(collection)
        with self._lock, self._session_factory() as db:
            row = db.get(model, doc_id)
            if row is None:
                raise DocumentNotFound(collection, doc_id)
            for key, value in fields.items():
                if key == "id" or key not in model.__table__.columns:
                    continue
                setattr(row, key, value)
            db.commit()
            db.refresh(row)
            document = _to_document(row)
        self._notify(collection, doc_id)
        return document

    def delete(self, collection: str, doc_id: str) -> None:
        model = self._model(collection)
        with self._lock, self._session_factory() as db:
            row = db.get(model, doc_id)
            if row is None:
                raise DocumentNotFound(collection, doc_id)
            db.delete(row)
            db.commit()
        self._notify(collection, doc_id)

    async def acreate(self, collection: str, fields: dict[str, Any]) -> str:
        return await asyncio.to_thread(self.create, collection, fields)

    async def amerge_update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        return await asyncio.to_thread(self.merge_update, collection, doc_id, fields)

    # -- subscriptions -----------------------------------------------------

    def subscribe_document(
        self,
        collection: str,
        doc_id: str,
        on_snapshot: Callable[[DocumentSnapshot], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Subscription:
        self._model(collection)
        subscription = Subscription(self, collection, on_snapshot, on_error, doc_id=doc_id)
        return self._subscribe(subscription)

    def subscribe_query(
        self,
        collection: str,
        filters: dict[str, Any],
        on_snapshot: Callable[[list[dict[str, Any]]], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Subscription:
        self._model(collection)
        subscription = Subscription(self, collection, on_snapshot, on_error, filters=filters)
        return self._subscribe(subscription)

    def _subscribe(self, subscription: Subscription) -> Subscription:
        with self._lock:
            self._subscriptions.append(subscription)
        loop = self._loop
        if loop is not None and _running_loop() is loop:
            # First read goes to a worker so the loop never waits on the database.
            loop.run_in_executor(None, self._refresh, subscription)
        else:
            self._refresh(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def _notify(self, collection: str, doc_id: str) -> None:
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(collection, doc_id)]
        for subscription in targets:
            self._refresh(subscription)

    def _refresh(self, subscription: Subscription) -> None:
        # Read and hand-off share the lock, so snapshots leave in commit order.
        with self._lock:
            try:
                if subscription.doc_id is not None:
                    data = self.get(subscription.collection, subscription.doc_id)
                    payload: Any = DocumentSnapshot(subscription.doc_id, data is not None, data)
                else:
                    payload = self.query(subscription.collection, **subscription.filters)
            except (SQLAlchemyError, ValueError) as exc:
                logger.error("Snapshot for %s failed: %s", subscription.collection, exc)
                if subscription.on_error is not None:
                    self._dispatch(subscription, subscription.on_error, exc)
                return
            self._dispatch(subscription, subscription.on_snapshot, payload)

    def _dispatch(self, subscription: Subscription, callback: Callable[[Any], None], payload: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            self._deliver(subscription, callback, payload)
            return
        loop.call_soon_threadsafe(self._deliver, subscription, callback, payload)

    @staticmethod
    def _deliver(subscription: Subscription, callback: Callable[[Any], None], payload: Any) -> None:
        # Cancellation happens on the same loop, so checking here is enough.
        if subscription.active:
            callback(payload)
