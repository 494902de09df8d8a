from pydantic import BaseModel, Field, model_validator

HHMM_PATTERN = r"^([01]\d|2[0-3]):([0-5]\d)$"


class AssignmentIn(BaseModel):
    playlist_id: str = Field(..., min_length=1)
    day_of_week: list[int] = Field(..., min_length=1)
    start_time: str = Field("09:00", pattern=HHMM_PATTERN)
    end_time: str = Field("17:00", pattern=HHMM_PATTERN)

    @model_validator(mode="after")
    def _check_window(self) -> "AssignmentIn":
        if any(day < 0 or day > 6 for day in self.day_of_week):
            raise ValueError("day_of_week values must be 0 (Sunday) through 6 (Saturday).")
        if self.start_time >= self.end_time:
            raise ValueError("end_time must be after start_time.")
        self.day_of_week = sorted(set(self.day_of_week))
        return self


class ScreenIn(BaseModel):
    name: str = Field(..., min_length=2)
    assignments: list[AssignmentIn] = Field(default_factory=list)
