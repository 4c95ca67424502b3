class PhysioError(Exception):
    """Base error for the physioai core."""

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message


class UnknownExerciseError(PhysioError):
    def __init__(self, exercise_id: str):
        super().__init__(f"Unknown exercise: {exercise_id}")
        self.exercise_id = exercise_id


class InvalidFrameError(PhysioError):
    """Raised when a landmark payload cannot be read as a pose frame."""
