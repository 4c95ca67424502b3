import numpy as np
import pytest

from physioai.core.data_types import Landmark
from physioai.core.kinematics import (
    calculate_angle_3d, calculate_angular_velocity, calculate_distance_3d,
    calculate_symmetry_score, dot, magnitude, midpoint, normalize, round_half_up, subtract,
)


def test_vector_operations():
    a = Landmark(1.0, 2.0, 3.0)
    b = Landmark(0.0, 1.0, 1.0)

    assert subtract(a, b).tolist() == [1.0, 1.0, 2.0]
    assert dot(a, b) == pytest.approx(5.0)
    assert magnitude(np.array([3.0, 4.0, 0.0])) == pytest.approx(5.0)
    assert calculate_distance_3d(Landmark(0, 0, 0), Landmark(1, 2, 2)) == pytest.approx(3.0)


def test_normalize_keeps_zero_vector():
    assert normalize(np.zeros(3)).tolist() == [0.0, 0.0, 0.0]
    assert np.linalg.norm(normalize(np.array([2.0, 0.0, 0.0]))) == pytest.approx(1.0)


def test_midpoint_carries_lowest_visibility():
    mid = midpoint(Landmark(0, 0, 0, 0.9), Landmark(1, 1, 1, 0.4))
    assert (mid.x, mid.y, mid.z) == (0.5, 0.5, 0.5)
    assert mid.visibility == 0.4


@pytest.mark.parametrize("c, expected", [
    ((0.0, 1.0, 0.0), 90.0),
    ((-1.0, 0.0, 0.0), 180.0),
    ((1.0, 1.0, 0.0), 45.0),
    ((2.0, 0.0, 0.0), 0.0),
])
def test_angle_at_vertex(c, expected):
    assert calculate_angle_3d(Landmark(1, 0, 0), Landmark(0, 0, 0), Landmark(*c)) == pytest.approx(expected)


def test_angle_is_symmetric_and_bounded():
    rng = np.random.default_rng(7)
    for _ in range(50):
        a, b, c = (rng.uniform(-1, 1, 3) for _ in range(3))
        forward = calculate_angle_3d(a, b, c)
        assert 0.0 <= forward <= 180.0
        assert forward == pytest.approx(calculate_angle_3d(c, b, a))


def test_degenerate_angle_is_zero():
    point = Landmark(0.3, 0.3, 0.0)
    assert calculate_angle_3d(point, point, Landmark(1, 1, 0)) == 0.0


def test_angular_velocity():
    assert calculate_angular_velocity(100, 90, 100) == pytest.approx(100.0)
    assert calculate_angular_velocity(90, 100, 100) == pytest.approx(100.0)
    assert calculate_angular_velocity(120, 100, 100) == pytest.approx(2 * calculate_angular_velocity(110, 100, 100))
    assert calculate_angular_velocity(120, 100, 0) == 0.0


@pytest.mark.parametrize("left, right, expected", [
    (90, 90, 100),
    (0, 0, 100),
    (90, 180, 50),
    (0, 180, 0),
    (100, 99, 99),
])
def test_symmetry_score(left, right, expected):
    assert calculate_symmetry_score(left, right) == expected


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2
