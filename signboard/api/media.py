from fastapi import APIRouter, Depends

from signboard.api.deps import get_current_user_id, get_owned, get_store
from signboard.schemas.media import MediaItemIn
from signboard.services.store import DocumentStore

router = APIRouter(prefix="/media", tags=["media"])

MEDIA = "media_items"


@router.post("")
def create_media(
    body: MediaItemIn,
    user_id: str = Depends(get_current_user_id),
    store: DocumentStore = Depends(get_store),
):
    media_id = store.create(MEDIA, {**body.model_dump(), "title": body.title.strip(), "user_id": user_id})
    return store.get(MEDIA, media_id)


@router.get("")
def list_media(
    type: str | None = None,
    user_id: str = Depends(get_current_user_id),
    store: DocumentStore = Depends(get_store),
):
    filters = {"user_id": user_id}
    normalized_type = (type or "").strip().lower()
    if normalized_type in {"image", "video"}:
        filters["type"] = normalized_type
    items = store.query(MEDIA, **filters)
    items.sort(key=lambda item: (item["created_at"], item["id"]), reverse=True)
    return items


@router.get("/{media_id}")
def get_media(
    media_id: str,
    user_id: str = Depends(get_current_user_id),
    store: DocumentStore = Depends(get_store),
):
    return get_owned(store, MEDIA, media_id, user_id, "Media item")


@router.put("/{media_id}")
def replace_media(
    media_id: str,
    body: MediaItemIn,
    user_id: str = Depends(get_current_user_id),
    store: DocumentStore = Depends(get_store),
):
    get_owned(store, MEDIA, media_id, user_id, "Media item")
    return store.merge_update(MEDIA, media_id, {**body.model_dump(), "title": body.title.strip()})


@router.delete("/{media_id}")
def delete_media(
    media_id: str,
    user_id: str = Depends(get_current_user_id),
    store: DocumentStore = Depends(get_store),
):
    # Playlists keep the dangling id; resolution skips it.
    get_owned(store, MEDIA, media_id, user_id, "Media item")
    store.delete(MEDIA, media_id)
    return {"ok": True}
