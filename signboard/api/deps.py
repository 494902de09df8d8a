from fastapi import HTTPException, Request

from signboard.services.store import DocumentStore


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_current_user_id(request: Request) -> str:
    # Sign-in happens at the identity provider; the gateway forwards the uid.
    user_id = (request.headers.get("X-User-ID") or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user_id


def get_owned(store: DocumentStore, collection: str, doc_id: str, user_id: str, label: str) -> dict:
    document = store.get(collection, doc_id)
    # Another tenant's document is reported exactly like a missing one.
    if document is None or document.get("user_id") != user_id:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return document
