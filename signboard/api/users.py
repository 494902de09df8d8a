from fastapi import APIRouter, Depends, Request

from signboard.api.deps import get_current_user_id, get_store
from signboard.services.store import DocumentStore

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me")
def current_profile(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    store: DocumentStore = Depends(get_store),
):
    profile = store.get("users", user_id)
    if profile is not None:
        return profile
    # First sign-in: seed the profile from whatever the identity provider forwarded.
    store.create(
        "users",
        {
            "id": user_id,
            "display_name": (request.headers.get("X-User-Name") or "").strip() or "Anonymous",
            "email": (request.headers.get("X-User-Email") or "").strip(),
        },
    )
    return store.get("users", user_id)
