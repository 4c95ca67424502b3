from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class WorkoutSessionRecord(BaseModel):
    """Plain record handed to the persistence layer when a session finishes."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "date": "2026-03-14T09:30:00",
                "exercise_id": "pushup",
                "reps": 12,
                "form_score": 87,
                "duration_seconds": 64,
            }
        }
    )

    date: datetime = Field(..., description="Session finish time")
    exercise_id: str = Field(..., description="Catalog id of the exercise")
    reps: int = Field(..., ge=0, description="Reps counted, or whole seconds held for a plank")
    form_score: int = Field(..., ge=0, le=100, description="Form score at the end of the session")
    duration_seconds: int = Field(..., ge=0, description="Elapsed session time")
