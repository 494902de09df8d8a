from fastapi import APIRouter, Depends, HTTPException

from signboard.api.deps import get_current_user_id, get_owned, get_store
from signboard.schemas.playlist import PlaylistIn
from signboard.services.store import DocumentStore

router = APIRouter(prefix="/playlists", tags=["playlists"])

PLAYLISTS = "playlists"


def _validated_media_ids(store: DocumentStore, user_id: str, media_item_ids: list[str]) -> list[str]:
    normalized = [media_id.strip() for media_id in media_item_ids if media_id and media_id.strip()]
    if not normalized:
        return []
    owned = {item["id"] for item in store.query("media_items", user_id=user_id)}
    missing = sorted(set(normalized) - owned)
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"media_item_ids contains unknown media id: {', '.join(missing)}",
        )
    return normalized


@router.post("")
def create_playlist(
    body: PlaylistIn,
    user_id: str = Depends(get_current_user_id),
    store: DocumentStore = Depends(get_store),
):
    playlist_id = store.create(
        PLAYLISTS,
        {
            "name": body.name.strip(),
            "media_item_ids": _validated_media_ids(store, user_id, body.media_item_ids),
            "user_id": user_id,
        },
    )
    return store.get(PLAYLISTS, playlist_id)


@router.get("")
def list_playlists(user_id: str = Depends(get_current_user_id), store: DocumentStore = Depends(get_store)):
    playlists = store.query(PLAYLISTS, user_id=user_id)
    playlists.sort(key=lambda playlist: (playlist["created_at"], playlist["id"]))
    return playlists


@router.get("/{playlist_id}")
def get_playlist(
    playlist_id: str,
    user_id: str = Depends(get_current_user_id),
    store: DocumentStore = Depends(get_store),
):
    return get_owned(store, PLAYLISTS, playlist_id, user_id, "Playlist")


@router.put("/{playlist_id}")
def update_playlist(
    playlist_id: str,
    body: PlaylistIn,
    user_id: str = Depends(get_current_user_id),
    store: DocumentStore = Depends(get_store),
):
    get_owned(store, PLAYLISTS, playlist_id, user_id, "Playlist")
    return store.merge_update(
        PLAYLISTS,
        playlist_id,
        {
            "name": body.name.strip(),
            "media_item_ids": _validated_media_ids(store, user_id, body.media_item_ids),
        },
    )


@router.delete("/{playlist_id}")
def delete_playlist(
    playlist_id: str,
    user_id: str = Depends(get_current_user_id),
    store: DocumentStore = Depends(get_store),
):
    # Screen assignments that still point here simply stop contributing.
    get_owned(store, PLAYLISTS, playlist_id, user_id, "Playlist")
    store.delete(PLAYLISTS, playlist_id)
    return {"ok": True}
