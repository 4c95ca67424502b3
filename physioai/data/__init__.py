from .exercises import EXERCISES, get_exercise_by_id, list_exercises

__all__ = ['EXERCISES', 'get_exercise_by_id', 'list_exercises']
