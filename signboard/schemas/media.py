from typing import Literal

from pydantic import BaseModel, Field, model_validator


class MediaItemIn(BaseModel):
    title: str = Field(..., min_length=1)
    type: Literal["image", "video"] = "image"
    url: str = Field(..., min_length=1)
    duration: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _image_duration(self) -> "MediaItemIn":
        # Only images advance on a timer; videos play to their natural end.
        if self.type == "image":
            self.duration = self.duration or 5
        else:
            self.duration = None
        return self
