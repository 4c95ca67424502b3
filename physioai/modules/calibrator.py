"""
Calibration Module for PHYSIOAI.

Collects the user's neutral facial measurements during the first seconds
of a session and turns them into a CalibrationBaseline.
"""

from dataclasses import dataclass, field
from typing import List, Optional
from enum import Enum
import logging

from ..core.data_types import CalibrationBaseline, DEFAULT_BASELINE, FaceRatios, PoseFrame
from .pain_detector import PainDetector

logger = logging.getLogger(__name__)


class CalibrationState(Enum):
    """Calibration states."""
    IDLE = "idle"
    COLLECTING = "collecting"
    COMPLETED = "completed"


@dataclass
class FaceCalibrator:
    """
    Neutral-expression calibrator driven by frame timestamps.

    The first frame starts the sampling window; once the window has
    elapsed the baseline is the mean of every valid sample. Frames with
    missing face landmarks are skipped, and a window without a single
    valid sample yields DEFAULT_BASELINE.
    """

    duration_ms: float = 3000.0
    pain_detector: PainDetector = field(default_factory=PainDetector)
    state: CalibrationState = CalibrationState.IDLE

    # Data collection
    samples: List[FaceRatios] = field(default_factory=list)
    start_time: Optional[float] = None
    elapsed_ms: float = 0.0
    skipped_frames: int = 0
    baseline: Optional[CalibrationBaseline] = None
    used_default: bool = False

    @property
    def progress(self) -> float:
        """Fraction of the sampling window elapsed, 0-1."""
        if self.state == CalibrationState.COMPLETED:
            return 1.0
        if self.duration_ms <= 0:
            return 0.0
        return min(1.0, self.elapsed_ms / self.duration_ms)

    @property
    def is_complete(self) -> bool:
        return self.state == CalibrationState.COMPLETED

    def start_calibration(self, timestamp_ms: float):
        """Start the sampling window at timestamp_ms."""
        self.state = CalibrationState.COLLECTING
        self.samples = []
        self.skipped_frames = 0
        self.baseline = None
        self.used_default = False
        self.start_time = timestamp_ms
        self.elapsed_ms = 0.0

    def update_calibration(self, frame: PoseFrame) -> Optional[CalibrationBaseline]:
        """
        Add one frame to the calibration sample.

        Args:
            frame: Current pose frame.

        Returns:
            The baseline once the window has elapsed, otherwise None.
        """
        if self.state == CalibrationState.COMPLETED:
            return self.baseline

        if self.state == CalibrationState.IDLE:
            self.start_calibration(frame.timestamp_ms)

        ratios = self.pain_detector.compute_face_ratios(frame)
        if ratios is not None:
            self.samples.append(ratios)
        else:
            self.skipped_frames += 1

        self.elapsed_ms = frame.timestamp_ms - self.start_time
        if self.elapsed_ms >= self.duration_ms:
            return self._complete_calibration()

        return None

    def _complete_calibration(self) -> CalibrationBaseline:
        """Complete the calibration process."""
        if self.samples:
            self.baseline = CalibrationBaseline.from_samples(self.samples)
            logger.info(
                "Calibration completed with %d samples (%d skipped)",
                len(self.samples), self.skipped_frames,
            )
        else:
            self.baseline = DEFAULT_BASELINE
            self.used_default = True
            logger.warning("Calibration collected no valid face sample, using default baseline")

        self.state = CalibrationState.COMPLETED
        return self.baseline

    def get_calibration_result(self) -> dict:
        """
        Get calibration results.

        Returns:
            Dictionary with calibration data
        """
        return {
            'state': self.state.value,
            'samples': len(self.samples),
            'skipped_frames': self.skipped_frames,
            'used_default': self.used_default,
            'baseline': vars(self.baseline) if self.baseline else None,
        }

    def reset(self):
        """Reset calibration."""
        self.state = CalibrationState.IDLE
        self.samples = []
        self.start_time = None
        self.elapsed_ms = 0.0
        self.skipped_frames = 0
        self.baseline = None
        self.used_default = False
