# PHYSIOAI core package
# Real-time exercise analysis from pose landmark streams

from .core import Landmark, PoseFrame, ExerciseState, settings
from .modules import ExerciseEngine, BiometricCalculator, PainDetector
from .data import get_exercise_by_id, list_exercises
from .utils import SessionLogger, configure_logging

__all__ = [
    'Landmark',
    'PoseFrame',
    'ExerciseState',
    'settings',
    'ExerciseEngine',
    'BiometricCalculator',
    'PainDetector',
    'get_exercise_by_id',
    'list_exercises',
    'SessionLogger',
    'configure_logging',
]
