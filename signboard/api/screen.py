from fastapi import APIRouter, Depends, HTTPException

from signboard.api.deps import get_current_user_id, get_owned, get_store
from signboard.schemas.screen import AssignmentIn, ScreenIn
from signboard.services.presence import SESSION_STALE_AFTER_SEC, count_active_sessions
from signboard.services.store import DocumentStore

router = APIRouter(prefix="/screens", tags=["screens"])

SCREENS = "screens"


def _validated_assignments(store: DocumentStore, user_id: str, assignments: list[AssignmentIn]) -> list[dict]:
    if not assignments:
        return []
    owned = {playlist["id"] for playlist in store.query("playlists", user_id=user_id)}
    missing = sorted({a.playlist_id for a in assignments} - owned)
    if missing:
        raise HTTPException(status_code=400, detail=f"Unknown playlist_id: {', '.join(missing)}")
    return [a.model_dump() for a in assignments]


@router.post("")
def create_screen(
    body: ScreenIn,
    user_id: str = Depends(get_current_user_id),
    store: DocumentStore = Depends(get_store),
):
    screen_id = store.create(
        SCREENS,
        {
            "name": body.name.strip(),
            "assignments": _validated_assignments(store, user_id, body.assignments),
            "user_id": user_id,
        },
    )
    return store.get(SCREENS, screen_id)


@router.get("")
def list_screens(user_id: str = Depends(get_current_user_id), store: DocumentStore = Depends(get_store)):
    screens = store.query(SCREENS, user_id=user_id)
    screens.sort(key=lambda screen: (screen["created_at"], screen["id"]))
    return screens


@router.get("/{screen_id}")
def get_screen(
    screen_id: str,
    user_id: str = Depends(get_current_user_id),
    store: DocumentStore = Depends(get_store),
):
    return get_owned(store, SCREENS, screen_id, user_id, "Screen")


@router.put("/{screen_id}")
def update_screen(
    screen_id: str,
    body: ScreenIn,
    user_id: str = Depends(get_current_user_id),
    store: DocumentStore = Depends(get_store),
):
    get_owned(store, SCREENS, screen_id, user_id, "Screen")
    return store.merge_update(
        SCREENS,
        screen_id,
        {
            "name": body.name.strip(),
            "assignments": _validated_assignments(store, user_id, body.assignments),
        },
    )


@router.delete("/{screen_id}")
def delete_screen(
    screen_id: str,
    user_id: str = Depends(get_current_user_id),
    store: DocumentStore = Depends(get_store),
):
    get_owned(store, SCREENS, screen_id, user_id, "Screen")
    store.delete(SCREENS, screen_id)
    return {"ok": True}


@router.post("/{screen_id}/assignments")
def add_assignment(
    screen_id: str,
    body: AssignmentIn,
    user_id: str = Depends(get_current_user_id),
    store: DocumentStore = Depends(get_store),
):
    screen = get_owned(store, SCREENS, screen_id, user_id, "Screen")
    added = _validated_assignments(store, user_id, [body])
    return store.merge_update(SCREENS, screen_id, {"assignments": list(screen["assignments"] or []) + added})


@router.delete("/{screen_id}/assignments/{index}")
def remove_assignment(
    screen_id: str,
    index: int,
    user_id: str = Depends(get_current_user_id),
    store: DocumentStore = Depends(get_store),
):
    screen = get_owned(store, SCREENS, screen_id, user_id, "Screen")
    assignments = list(screen["assignments"] or [])
    if index < 0 or index >= len(assignments):
        raise HTTPException(status_code=404, detail="Assignment not found")
    del assignments[index]
    return store.merge_update(SCREENS, screen_id, {"assignments": assignments})


@router.get("/{screen_id}/active-displays")
def active_displays(
    screen_id: str,
    user_id: str = Depends(get_current_user_id),
    store: DocumentStore = Depends(get_store),
):
    get_owned(store, SCREENS, screen_id, user_id, "Screen")
    return {
        "screen_id": screen_id,
        "active": count_active_sessions(store, screen_id),
        "stale_after_sec": SESSION_STALE_AFTER_SEC,
    }
