"""
Kinematics Module for PHYSIOAI.

Pure 3D vector math used by every analysis stage: vector operations,
landmark distances, the angle at a vertex, angular velocity and the
left/right symmetry score.
"""

import math
from typing import Union
import numpy as np

from .data_types import Landmark

Vector = Union[Landmark, np.ndarray]


def _as_array(point: Vector) -> np.ndarray:
    if isinstance(point, Landmark):
        return point.to_array()
    return np.asarray(point, dtype=np.float64)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def subtract(a: Vector, b: Vector) -> np.ndarray:
    return _as_array(a) - _as_array(b)


def dot(a: Vector, b: Vector) -> float:
    return float(np.dot(_as_array(a), _as_array(b)))


def magnitude(v: Vector) -> float:
    return float(np.linalg.norm(_as_array(v)))


def normalize(v: Vector) -> np.ndarray:
    """Unit vector of v; the zero vector stays zero."""
    arr = _as_array(v)
    mag = np.linalg.norm(arr)
    if mag == 0:
        return np.zeros(3)
    return arr / mag


def midpoint(a: Landmark, b: Landmark) -> Landmark:
    """Midpoint of two landmarks, carrying the lower visibility."""
    return Landmark(
        x=(a.x + b.x) / 2,
        y=(a.y + b.y) / 2,
        z=(a.z + b.z) / 2,
        visibility=min(a.confidence, b.confidence),
    )


def calculate_distance_3d(a: Vector, b: Vector) -> float:
    """Euclidean distance between two landmarks."""
    return magnitude(subtract(a, b))


def calculate_angle_3d(point_a: Vector, point_b: Vector, point_c: Vector) -> float:
    """
    Calculate the angle at point_b formed by point_a-point_b-point_c.

    Args:
        point_a: First point.
        point_b: Vertex.
        point_c: Third point.

    Returns:
        Angle in degrees within [0, 180]; 0 when either arm has zero length.
    """
    v1 = subtract(point_a, point_b)
    v2 = subtract(point_c, point_b)

    magnitude_product = np.linalg.norm(v1) * np.linalg.norm(v2)
    if magnitude_product == 0:
        return 0.0

    cos_angle = np.dot(v1, v2) / magnitude_product
    cos_angle = np.clip(cos_angle, -1.0, 1.0)  # Handle floating point errors

    return float(np.degrees(np.arccos(cos_angle)))


def calculate_angular_velocity(current_angle: float, previous_angle: float, delta_time_ms: float) -> float:
    """
    Angular velocity in degrees/second.

    Args:
        current_angle: Angle now (degrees).
        previous_angle: Angle at the previous reading (degrees).
        delta_time_ms: Time between readings.

    Returns:
        Non-negative speed; 0 when delta_time_ms is not positive.
    """
    if delta_time_ms <= 0:
        return 0.0
    return abs(current_angle - previous_angle) / (delta_time_ms / 1000.0)


def calculate_symmetry_score(left_angle: float, right_angle: float) -> int:
    """
    Left/right symmetry on a 0-100 scale.

    The max(..., 1) floor keeps the score defined for two zero angles.
    """
    max_angle = max(left_angle, right_angle, 1.0)
    difference = abs(left_angle - right_angle)
    symmetry = 1.0 - difference / max_angle
    return max(0, min(100, round_half_up(symmetry * 100)))
