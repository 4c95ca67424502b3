"""
Exercise Schemas for PHYSIOAI.

Static per-exercise configuration read by the engine. The core only uses
id and the two angle thresholds; the rest is metadata for the
presentation layer.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from ..helpers.enums import Difficulty, ExerciseCategory


class ExerciseDefinition(BaseModel):
    """Catalog entry of one exercise."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "squat",
                "name": "Squat",
                "description": "Lower body compound movement",
                "category": "lower",
                "difficulty": "beginner",
                "primary_muscles": ["Quadriceps", "Glutes", "Hamstrings"],
                "key_landmarks": [23, 24, 25, 26, 27, 28],
                "down_angle_threshold": 90,
                "up_angle_threshold": 160,
                "instructions": ["Stand with feet shoulder-width apart"],
                "benefits": ["Builds leg strength"],
            }
        },
    )

    id: str = Field(..., description="Stable identifier, selects the exercise kind")
    name: str = Field(..., description="Display name")
    description: str = Field(default="", description="Short description")
    category: ExerciseCategory = Field(..., description="Body region trained")
    difficulty: Difficulty = Field(default=Difficulty.BEGINNER, description="Difficulty level")
    primary_muscles: List[str] = Field(default_factory=list, description="Muscles targeted")
    key_landmarks: List[int] = Field(default_factory=list, description="Pose landmark indices of interest")
    down_angle_threshold: float = Field(..., description="Primary angle of the low / contracted position (degrees)")
    up_angle_threshold: float = Field(..., description="Primary angle of the high / extended position (degrees)")
    instructions: List[str] = Field(default_factory=list, description="Step-by-step cues")
    benefits: List[str] = Field(default_factory=list, description="Why the exercise helps")
