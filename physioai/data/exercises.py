"""
Default exercise catalog for PHYSIOAI.

One entry per supported exercise kind. Thresholds are the primary angle
(degrees) of the low / contracted position and of the high / extended
position; the engine applies its own hysteresis on top of them.
"""

from typing import Dict, List, Optional, Union

from ..core.data_types import PoseLandmark as PL
from ..helpers.enums import Difficulty, ExerciseCategory
from ..schemas.sche_exercise import ExerciseDefinition

_ARMS = [PL.LEFT_SHOULDER, PL.RIGHT_SHOULDER, PL.LEFT_ELBOW, PL.RIGHT_ELBOW, PL.LEFT_WRIST, PL.RIGHT_WRIST]
_LEGS = [PL.LEFT_HIP, PL.RIGHT_HIP, PL.LEFT_KNEE, PL.RIGHT_KNEE, PL.LEFT_ANKLE, PL.RIGHT_ANKLE]


def _landmarks(*groups) -> List[int]:
    return [int(index) for group in groups for index in group]


EXERCISES: List[ExerciseDefinition] = [
    ExerciseDefinition(
        id='pushup',
        name='Push-up',
        description='Classic upper body pressing movement',
        category=ExerciseCategory.UPPER,
        difficulty=Difficulty.BEGINNER,
        primary_muscles=['Chest', 'Triceps', 'Shoulders'],
        key_landmarks=_landmarks(_ARMS, [PL.LEFT_HIP, PL.RIGHT_HIP]),
        down_angle_threshold=90,
        up_angle_threshold=160,
        instructions=[
            'Place hands slightly wider than shoulder-width',
            'Keep your body in a straight line from head to heels',
            'Lower your chest until elbows reach about 90 degrees',
            'Push back up to full arm extension',
        ],
        benefits=['Builds chest and arm strength', 'Improves core stability'],
    ),
    ExerciseDefinition(
        id='tricep-dip',
        name='Tricep Dip',
        description='Bodyweight dip on a chair or bench',
        category=ExerciseCategory.UPPER,
        difficulty=Difficulty.INTERMEDIATE,
        primary_muscles=['Triceps', 'Shoulders'],
        key_landmarks=_landmarks(_ARMS),
        down_angle_threshold=90,
        up_angle_threshold=160,
        instructions=[
            'Grip the edge of a stable bench behind you',
            'Lower your body by bending the elbows to about 90 degrees',
            'Press back up without locking the elbows hard',
        ],
        benefits=['Strengthens the back of the arms'],
    ),
    ExerciseDefinition(
        id='squat',
        name='Squat',
        description='Lower body compound movement',
        category=ExerciseCategory.LOWER,
        difficulty=Difficulty.BEGINNER,
        primary_muscles=['Quadriceps', 'Glutes', 'Hamstrings'],
        key_landmarks=_landmarks(_LEGS),
        down_angle_threshold=90,
        up_angle_threshold=160,
        instructions=[
            'Stand with feet shoulder-width apart',
            'Push hips back and bend the knees',
            'Lower until thighs are roughly parallel to the floor',
            'Drive through the heels to stand up',
        ],
        benefits=['Builds leg strength', 'Improves mobility'],
    ),
    ExerciseDefinition(
        id='lunge',
        name='Lunge',
        description='Single-leg step and lower',
        category=ExerciseCategory.LOWER,
        difficulty=Difficulty.INTERMEDIATE,
        primary_muscles=['Quadriceps', 'Glutes'],
        key_landmarks=_landmarks(_LEGS),
        down_angle_threshold=100,
        up_angle_threshold=160,
        instructions=[
            'Step forward with one leg',
            'Lower until the front knee is bent to about 90 degrees',
            'Push back to the starting position',
        ],
        benefits=['Improves balance', 'Strengthens each leg independently'],
    ),
    ExerciseDefinition(
        id='bicep-curl',
        name='Bicep Curl',
        description='Elbow flexion with or without weights',
        category=ExerciseCategory.UPPER,
        difficulty=Difficulty.BEGINNER,
        primary_muscles=['Biceps', 'Forearms'],
        key_landmarks=_landmarks(_ARMS),
        down_angle_threshold=160,
        up_angle_threshold=50,
        instructions=[
            'Stand tall with arms extended by your sides',
            'Curl the forearms up keeping elbows close to the body',
            'Lower slowly to full extension',
        ],
        benefits=['Builds arm strength'],
    ),
    ExerciseDefinition(
        id='shoulder-press',
        name='Shoulder Press',
        description='Overhead press from shoulder height',
        category=ExerciseCategory.UPPER,
        difficulty=Difficulty.BEGINNER,
        primary_muscles=['Shoulders', 'Triceps'],
        key_landmarks=_landmarks(_ARMS, [PL.LEFT_HIP, PL.RIGHT_HIP]),
        down_angle_threshold=90,
        up_angle_threshold=160,
        instructions=[
            'Start with hands at shoulder height',
            'Press straight overhead until arms are extended',
            'Lower back to shoulder height with control',
        ],
        benefits=['Strengthens shoulders', 'Improves overhead mobility'],
    ),
    ExerciseDefinition(
        id='lateral-raise',
        name='Lateral Raise',
        description='Raise the arms out to the side',
        category=ExerciseCategory.UPPER,
        difficulty=Difficulty.BEGINNER,
        primary_muscles=['Lateral deltoids'],
        key_landmarks=_landmarks(_ARMS, [PL.LEFT_HIP, PL.RIGHT_HIP]),
        down_angle_threshold=30,
        up_angle_threshold=80,
        instructions=[
            'Stand with arms by your sides',
            'Raise both arms out to shoulder height',
            'Lower slowly',
        ],
        benefits=['Builds shoulder width and stability'],
    ),
    ExerciseDefinition(
        id='jumping-jack',
        name='Jumping Jack',
        description='Full body cardio movement',
        category=ExerciseCategory.FULL_BODY,
        difficulty=Difficulty.BEGINNER,
        primary_muscles=['Shoulders', 'Calves', 'Hip abductors'],
        key_landmarks=_landmarks(_ARMS, _LEGS),
        down_angle_threshold=30,
        up_angle_threshold=120,
        instructions=[
            'Start with feet together and arms by your sides',
            'Jump the feet apart while raising the arms overhead',
            'Jump back to the starting position',
        ],
        benefits=['Raises heart rate', 'Improves coordination'],
    ),
    ExerciseDefinition(
        id='calf-raise',
        name='Calf Raise',
        description='Rise onto the balls of the feet',
        category=ExerciseCategory.LOWER,
        difficulty=Difficulty.BEGINNER,
        primary_muscles=['Calves'],
        key_landmarks=_landmarks(
            [PL.LEFT_KNEE, PL.RIGHT_KNEE, PL.LEFT_ANKLE, PL.RIGHT_ANKLE, PL.LEFT_FOOT_INDEX, PL.RIGHT_FOOT_INDEX]
        ),
        down_angle_threshold=100,
        up_angle_threshold=125,
        instructions=[
            'Stand with feet hip-width apart',
            'Rise onto your toes as high as possible',
            'Lower the heels slowly',
        ],
        benefits=['Strengthens the calves', 'Supports ankle stability'],
    ),
    ExerciseDefinition(
        id='plank',
        name='Plank',
        description='Isometric core hold',
        category=ExerciseCategory.CORE,
        difficulty=Difficulty.BEGINNER,
        primary_muscles=['Core', 'Shoulders'],
        key_landmarks=_landmarks(
            [PL.LEFT_SHOULDER, PL.RIGHT_SHOULDER, PL.LEFT_ELBOW, PL.RIGHT_ELBOW], _LEGS
        ),
        down_angle_threshold=160,
        up_angle_threshold=180,
        instructions=[
            'Rest on your forearms with elbows under the shoulders',
            'Keep your body in a straight line from head to heels',
            'Hold the position while breathing steadily',
        ],
        benefits=['Builds core endurance', 'Improves posture'],
    ),
]

_BY_ID: Dict[str, ExerciseDefinition] = {exercise.id: exercise for exercise in EXERCISES}


def get_exercise_by_id(exercise_id: str) -> Optional[ExerciseDefinition]:
    """Catalog entry for an id, None when the id is unknown."""
    return _BY_ID.get(exercise_id)


def list_exercises(category: Optional[Union[ExerciseCategory, str]] = None) -> List[ExerciseDefinition]:
    """All catalog entries, optionally restricted to one category."""
    if category is None:
        return list(EXERCISES)
    category = ExerciseCategory(category)
    return [exercise for exercise in EXERCISES if exercise.category == category]
