import enum


class ExerciseCategory(str, enum.Enum):
    UPPER = 'upper'
    LOWER = 'lower'
    CORE = 'core'
    FULL_BODY = 'full-body'


class Difficulty(str, enum.Enum):
    BEGINNER = 'beginner'
    INTERMEDIATE = 'intermediate'
    ADVANCED = 'advanced'
