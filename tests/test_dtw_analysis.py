import math

import numpy as np
import pytest

from physioai.core.data_types import Landmark
from physioai.core.dtw_analysis import (
    GoldStandardSequence, StreamingDTW, compare_angle_sequences, compute_dtw,
    evaluate_rhythm_quality, frame_distance, preprocess_sequence,
)

from conftest import build_frame, build_landmarks


def _sweep(angles):
    return [build_landmarks(elbow_angle=a) for a in angles]


@pytest.fixture
def reference():
    angles = list(np.linspace(170, 60, 10)) + list(np.linspace(60, 170, 10))
    frames = [build_frame(timestamp_ms=i * 40, elbow_angle=a) for i, a in enumerate(angles)]
    return GoldStandardSequence.from_frames('pushup', frames)


def test_frame_distance():
    a = [Landmark(0, 0, 0), Landmark(1, 0, 0)]
    b = [Landmark(0, 1, 0), Landmark(1, 0, 0)]

    assert frame_distance(a, a) == 0.0
    assert frame_distance(a, b) == pytest.approx(0.5)
    assert frame_distance(a, b[:1]) == math.inf


def test_sequence_against_itself(reference):
    result = compute_dtw(reference.frames, reference)

    assert result.distance == 0.0
    assert result.quality_score == 100
    assert result.rhythm_quality == "excellent"
    assert result.alignment_path == [(i, i) for i in range(len(reference.frames))]


def test_empty_sequence(reference):
    for result in (compute_dtw([], reference), compute_dtw(reference.frames, [])):
        assert result.distance == math.inf
        assert result.quality_score == 0
        assert result.alignment_path == []


def test_slower_user_still_aligns(reference):
    angles = list(np.linspace(170, 60, 20)) + list(np.linspace(60, 170, 20))
    result = compute_dtw(_sweep(angles), reference)

    assert result.quality_score > 90
    assert result.alignment_path[0] == (0, 0)
    assert result.alignment_path[-1] == (39, 19)


def test_different_movement_scores_lower(reference):
    same = compute_dtw(_sweep(np.linspace(170, 60, 10)), reference)
    other = compute_dtw([build_landmarks(elbow_angle=170, overrides={i: (0.9, 0.1) for i in range(11, 33)})] * 10,
                        reference)
    assert other.quality_score < same.quality_score


def test_normalized_distance_uses_longer_sequence(reference):
    user = _sweep([170.0] * 30)
    result = compute_dtw(user, reference)
    assert result.normalized_distance == pytest.approx(result.distance / 30)


def test_gold_standard_from_frames(reference):
    assert reference.exercise_id == 'pushup'
    assert len(reference.frames) == 20
    assert reference.duration == pytest.approx(19 * 40)


def test_preprocess_sequence():
    processed = preprocess_sequence([0, 10, 20, 30, 40, 50, 60])
    assert processed.min() == pytest.approx(0.0)
    assert processed.max() == pytest.approx(1.0)

    flat = preprocess_sequence([5.0, 5.0, 5.0])
    assert flat.tolist() == [5.0, 5.0, 5.0]
    assert len(preprocess_sequence([])) == 0


def test_compare_angle_sequences():
    reference = list(np.linspace(170, 60, 15)) + list(np.linspace(60, 170, 15))
    slow = list(np.linspace(170, 60, 30)) + list(np.linspace(60, 170, 30))

    assert compare_angle_sequences(reference, reference).quality_score == 100
    assert compare_angle_sequences(slow, reference).quality_score > 75
    assert compare_angle_sequences([], reference).quality_score == 0


@pytest.mark.parametrize("score, label", [
    (100, "excellent"), (85, "excellent"), (84, "good"), (70, "good"), (69, "fair"), (50, "fair"), (49, "poor"),
])
def test_rhythm_quality(score, label):
    assert evaluate_rhythm_quality(score) == label


def test_streaming_dtw_waits_for_half_window(reference):
    streaming = StreamingDTW(reference, window_size=10)

    results = [streaming.add_frame(frame) for frame in reference.frames[:4]]
    assert results == [None] * 4
    assert streaming.get_current_score() == 0

    assert streaming.add_frame(reference.frames[4]) is not None
    assert streaming.get_current_score() > 0


def test_streaming_dtw_window_is_bounded(reference):
    streaming = StreamingDTW(reference, window_size=6)
    for frame in reference.frames:
        streaming.add_frame(frame)
    assert streaming.buffered_frames == 6

    streaming.reset()
    assert streaming.buffered_frames == 0
    assert streaming.get_current_score() == 0


def test_streaming_dtw_rejects_tiny_window(reference):
    with pytest.raises(ValueError):
        StreamingDTW(reference, window_size=1)
