from pydantic import BaseModel, Field


class PlaylistIn(BaseModel):
    name: str = Field(..., min_length=2)
    media_item_ids: list[str] = Field(default_factory=list)
