"""
Exercise Engine Module for PHYSIOAI.

Per-frame orchestrator: runs the neutral-face calibration, computes
biometrics, smooths the primary angle, drives the rep / hold state machine
of the selected exercise kind and escalates sustained signs of pain into a
halt command.

Per-frame pipeline (after calibration):

    landmarks ─► biometrics ─► primary angle ─► latch ─► moving average
                     │                                        │
                     ▼                                        ▼
               form evaluation                     glitch guard, cooldown,
                     │                              debounce ─► phase / reps
                     ▼
               pain EMA ─► safety policy ─► ExerciseState

Robustness layers around the raw state machine:
    - Angle latching: a primary angle lost for less than ANGLE_LATCH_MS
      reuses the last valid one
    - Smoothing: moving average over SMOOTHING_WINDOW valid samples
    - Glitch guard: average angular velocity above GLITCH_VELOCITY_DEG_S
      skips phase detection for the frame
    - Cooldown: no phase detection for REP_COOLDOWN_MS after a rep
    - Debounce: a candidate phase must hold MIN_PHASE_FRAMES consecutive
      frames before it is committed

Safety policy:
    Raw pain above ACUTE_PAIN_THRESHOLD at the peak-exertion point of the
    cycle is effort. Anywhere else it starts an acute timer; past
    ACUTE_PAIN_DURATION_MS of uninterrupted acute frames the engine emits
    HaltWorkout once and ignores frames until reset().

Every timing decision uses frame timestamps (milliseconds). The injected
clock (seconds) only stamps the session start.

Author: PHYSIOAI Team
Version: 1.0.0
"""

from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Deque, List, Optional, Tuple, Union
import logging
import math
import time

from ..core.config import Settings, settings as default_settings
from ..core.data_types import (
    BiometricSnapshot, CalibrationBaseline, ExercisePhase, ExerciseState, JointStress,
    PoseFrame, SafetyLog, SafetyStatus, SystemCommand,
)
from ..core.kinematics import calculate_angular_velocity, round_half_up
from ..data.exercises import get_exercise_by_id
from ..helpers.exceptions import InvalidFrameError, UnknownExerciseError
from ..schemas.sche_exercise import ExerciseDefinition
from ..schemas.sche_session import WorkoutSessionRecord
from ..utils.logger import LogCategory, SessionLogger
from .biometrics import BiometricCalculator, is_reliable
from .calibrator import FaceCalibrator
from .exercise_kinds import ExerciseKind, get_exercise_kind
from .form_evaluator import calculate_form_score, evaluate_form
from .pain_detector import DEFAULT_POLICY, PainDetector

logger = logging.getLogger(__name__)

RepCallback = Callable[[int], None]
FormCallback = Callable[[int, List[JointStress]], None]
HaltCallback = Callable[[SafetyLog], None]

MAX_ANGLE_HISTORY = 1000

SAFETY_MESSAGES = {
    SafetyStatus.CALIBRATING: "Calibrating: keep a relaxed, neutral face.",
    SafetyStatus.SCANNING: "Looking good. Keep going.",
    SafetyStatus.EFFORT_DETECTED: "High effort detected. Breathe and keep control.",
    SafetyStatus.PAIN_ALERT: "Signs of pain detected. Ease off the movement.",
}
HALT_MESSAGE = "Workout stopped: sustained signs of pain. Rest before continuing."


@dataclass
class PhaseDebouncer:
    """Commits a candidate phase only after it persists for min_frames frames."""
    min_frames: int
    pending: Optional[ExercisePhase] = None
    count: int = 0
    closes_rep: bool = False

    def observe(self, committed: ExercisePhase, candidate: ExercisePhase, closes_rep: bool) -> bool:
        """
        Feed one candidate.

        Returns:
            True when the pending candidate reached min_frames and must be
            committed.
        """
        if candidate == committed:
            self.clear()
            return False

        if candidate == self.pending:
            self.count += 1
        else:
            self.pending = candidate
            self.count = 1
        self.closes_rep = closes_rep
        return self.count >= self.min_frames

    def clear(self):
        self.pending = None
        self.count = 0
        self.closes_rep = False


@dataclass
class _EngineMemory:
    """Internal counters, timers and buffers of one session."""
    calibrator: FaceCalibrator
    debouncer: PhaseDebouncer
    velocity_history: Deque[Tuple[float, float]]
    smoothing: Deque[float]
    angle_history: Deque[Tuple[float, float]] = field(default_factory=lambda: deque(maxlen=MAX_ANGLE_HISTORY))
    baseline: Optional[CalibrationBaseline] = None
    previous_frame: Optional[PoseFrame] = None
    last_valid_angle: Optional[float] = None
    last_valid_timestamp: Optional[float] = None
    cooldown_until: float = -math.inf
    acute_pain_start: Optional[float] = None
    halted: bool = False
    hold_duration_ms: float = 0.0
    last_hold_tick: Optional[float] = None


class ExerciseEngine:
    """
    Real-time exercise tracker for one exercise.

    Frames must be fed one at a time; callbacks run synchronously inside
    process_frame and must not block.

    Example:
        >>> engine = ExerciseEngine("squat")
        >>> unsubscribe = engine.on_rep(lambda count: print("rep", count))
        >>> for landmarks, timestamp_ms in provider:
        ...     state = engine.process_frame(landmarks, timestamp_ms)
        ...     if state.safety_log.system_command is SystemCommand.HALT_WORKOUT:
        ...         break
        >>> record = engine.finish_session()
    """

    def __init__(
        self,
        exercise: Union[str, ExerciseDefinition],
        settings: Optional[Settings] = None,
        biometric_calculator: Optional[BiometricCalculator] = None,
        clock: Callable[[], float] = time.time,
        session_logger: Optional[SessionLogger] = None,
    ):
        """
        Initialize the engine.

        Args:
            exercise: Catalog id or a full ExerciseDefinition.
            settings: Tuning constants, defaults to the module settings.
            biometric_calculator: Custom calculator (pain policy, thresholds).
            clock: Wall clock in seconds, used for the session start.
            session_logger: Optional journal of session events.

        Raises:
            UnknownExerciseError: if the id is not in the catalog.
        """
        if isinstance(exercise, ExerciseDefinition):
            self._exercise = exercise
        else:
            definition = get_exercise_by_id(exercise)
            if definition is None:
                raise UnknownExerciseError(exercise)
            self._exercise = definition

        self._settings = settings or default_settings
        self._clock = clock
        self._session_logger = session_logger

        if biometric_calculator is None:
            policy = replace(DEFAULT_POLICY, visibility_threshold=self._settings.VISIBILITY_THRESHOLD)
            biometric_calculator = BiometricCalculator(
                pain_detector=PainDetector(policy),
                visibility_threshold=self._settings.VISIBILITY_THRESHOLD,
            )
        self._biometrics = biometric_calculator

        self._kind: ExerciseKind = get_exercise_kind(
            self._exercise.id,
            min_form_score=self._settings.PLANK_MIN_FORM_SCORE,
            alignment_tolerance=self._settings.PLANK_ALIGNMENT_TOLERANCE,
        )

        self._rep_callbacks: List[RepCallback] = []
        self._form_callbacks: List[FormCallback] = []
        self._halt_callbacks: List[HaltCallback] = []

        self._state = self._initial_state()
        self._memory = self._new_memory()

        logger.info("Exercise engine ready for %s (%r)", self._exercise.id, self._kind)
        self._journal(LogCategory.SYSTEM, "Session started", {'exercise_id': self._exercise.id})

    # ==================== PROPERTIES ====================

    @property
    def exercise_id(self) -> str:
        return self._exercise.id

    @property
    def kind(self) -> ExerciseKind:
        return self._kind

    @property
    def baseline(self) -> Optional[CalibrationBaseline]:
        """Calibration baseline, None until calibration completes."""
        return self._memory.baseline

    @property
    def is_halted(self) -> bool:
        return self._memory.halted

    # ==================== SETUP ====================

    def _initial_state(self) -> ExerciseState:
        return ExerciseState(
            exercise_id=self._exercise.id,
            start_time=self._clock(),
            safety_log=SafetyLog(
                status=SafetyStatus.CALIBRATING,
                ui_message=SAFETY_MESSAGES[SafetyStatus.CALIBRATING],
            ),
        )

    def _new_memory(self) -> _EngineMemory:
        s = self._settings
        return _EngineMemory(
            calibrator=FaceCalibrator(
                duration_ms=s.CALIBRATION_DURATION_MS,
                pain_detector=self._biometrics.pain_detector,
            ),
            debouncer=PhaseDebouncer(min_frames=s.MIN_PHASE_FRAMES),
            velocity_history=deque(maxlen=s.VELOCITY_HISTORY_SIZE),
            smoothing=deque(maxlen=s.SMOOTHING_WINDOW),
        )

    # ==================== MAIN ENTRY POINT ====================

    def process_frame(self, landmarks: Any, timestamp: float) -> ExerciseState:
        """
        Process one landmark frame.

        Args:
            landmarks: 33 landmarks (Landmark objects, mappings or
                (x, y, z, visibility) sequences) or a PoseFrame.
            timestamp: Frame timestamp in milliseconds.

        Returns:
            ExerciseState: Detached copy of the updated state, or of the
            unchanged state for malformed or incomplete frames, during a
            halt, and while calibrating (only calibration fields move).
        """
        try:
            frame = PoseFrame.from_landmarks(landmarks, timestamp)
        except InvalidFrameError as e:
            logger.debug("Rejected frame at %s: %s", timestamp, e.message)
            return self.get_state()

        if not frame.is_complete(self._settings.LANDMARK_COUNT):
            logger.debug("Rejected frame at %s: %d landmarks", timestamp, len(frame))
            return self.get_state()

        if self._memory.halted:
            return self.get_state()

        if not self._memory.calibrator.is_complete:
            self._update_calibration(frame)
            return self.get_state()

        self._analyze(frame)
        return self.get_state()

    # ==================== CALIBRATION ====================

    def _update_calibration(self, frame: PoseFrame) -> None:
        calibrator = self._memory.calibrator
        baseline = calibrator.update_calibration(frame)

        self._state.is_calibrating = True
        self._state.calibration_progress = round_half_up(calibrator.progress * 100)
        self._state.safety_log = SafetyLog(
            status=SafetyStatus.CALIBRATING,
            ui_message=SAFETY_MESSAGES[SafetyStatus.CALIBRATING],
        )

        if baseline is None:
            return

        self._memory.baseline = baseline
        self._state.is_calibrating = False
        self._state.calibration_progress = 100
        self._state.safety_log = SafetyLog(
            status=SafetyStatus.SCANNING,
            ui_message=SAFETY_MESSAGES[SafetyStatus.SCANNING],
        )
        if self._session_logger is not None:
            self._session_logger.record_calibration(calibrator.get_calibration_result())

    # ==================== ANALYSIS ====================

    def _analyze(self, frame: PoseFrame) -> None:
        memory = self._memory
        timestamp = frame.timestamp_ms

        delta_ms = None
        if memory.previous_frame is not None:
            delta_ms = timestamp - memory.previous_frame.timestamp_ms
        biometrics = self._biometrics.calculate(frame, memory.previous_frame, delta_ms, memory.baseline)

        # 1. Primary angle with latching and smoothing
        angle = self._latched_angle(frame, biometrics, timestamp)
        detect_phase = angle is not None

        if angle is not None:
            memory.velocity_history.append((angle, timestamp))
            memory.angle_history.append((angle, timestamp))
            velocity = self._average_velocity()
            self._state.angular_velocity = velocity

            # 2. Glitch guard
            if velocity > self._settings.GLITCH_VELOCITY_DEG_S:
                logger.debug("Tracking glitch at %s: %.0f deg/s", timestamp, velocity)
                detect_phase = False
            else:
                memory.smoothing.append(angle)
                self._state.current_angle = sum(memory.smoothing) / len(memory.smoothing)

        # 3. Form
        self._state.symmetry_score = biometrics.overall_symmetry
        stresses = evaluate_form(frame, self._exercise.id, biometrics)
        self._state.joint_stress = stresses
        self._state.form_score = calculate_form_score(biometrics, stresses)

        # 4. Phase / reps
        if detect_phase and memory.smoothing:
            self._detect_phase(timestamp)

        if self._kind.time_based:
            if detect_phase:
                self._accumulate_hold(timestamp)
            else:
                # Hold time pauses while the body line is not observed
                memory.last_hold_tick = None

        self._notify_form(self._state.form_score, list(stresses))

        # 5. Safety
        self._update_pain(biometrics)
        self._apply_safety_policy(biometrics, timestamp, has_angle=bool(memory.smoothing))

        memory.previous_frame = frame

    def _latched_angle(self, frame: PoseFrame, biometrics: BiometricSnapshot, timestamp: float) -> Optional[float]:
        """Primary angle, the last valid one during a short occlusion, else None."""
        memory = self._memory
        raw = self._kind.primary_angle(frame, biometrics, self._settings.VISIBILITY_THRESHOLD)

        if is_reliable(raw):
            memory.last_valid_angle = raw
            memory.last_valid_timestamp = timestamp
            return raw

        if (memory.last_valid_timestamp is not None
                and timestamp - memory.last_valid_timestamp < self._settings.ANGLE_LATCH_MS):
            return memory.last_valid_angle

        return None

    def _average_velocity(self) -> float:
        history = list(self._memory.velocity_history)
        velocities = [
            calculate_angular_velocity(current, previous, t_current - t_previous)
            for (previous, t_previous), (current, t_current) in zip(history, history[1:])
            if t_current > t_previous
        ]
        if not velocities:
            return 0.0
        return sum(velocities) / len(velocities)

    def _detect_phase(self, timestamp: float) -> None:
        memory = self._memory
        if timestamp < memory.cooldown_until:
            memory.debouncer.clear()
            return

        committed = self._state.phase
        candidate, closes_rep = self._kind.propose_phase(
            committed, self._state.current_angle, self._exercise, self._state.form_score,
        )
        if not memory.debouncer.observe(committed, candidate, closes_rep):
            return

        closes_rep = memory.debouncer.closes_rep
        memory.debouncer.clear()
        self._commit_phase(committed, candidate, timestamp)

        if closes_rep:
            self._count_rep(timestamp)

    def _commit_phase(self, old_phase: ExercisePhase, new_phase: ExercisePhase, timestamp: float) -> None:
        self._state.phase = new_phase
        logger.debug("Phase %s -> %s at %s", old_phase.value, new_phase.value, timestamp)
        if self._session_logger is not None:
            self._session_logger.record_phase_change(
                old_phase.value, new_phase.value, timestamp, self._state.current_angle,
            )

        if not self._kind.time_based:
            return
        memory = self._memory
        if new_phase == ExercisePhase.HOLD:
            self._state.is_holding = True
            self._state.hold_start_time = timestamp
            memory.last_hold_tick = timestamp
        else:
            self._state.is_holding = False
            memory.last_hold_tick = None

    def _count_rep(self, timestamp: float) -> None:
        """Count a rep, re-arm the cycle and start the cooldown."""
        self._state.rep_count += 1
        self._state.last_rep_time = timestamp
        self._state.phase = ExercisePhase.COMPLETE
        self._memory.cooldown_until = timestamp + self._settings.REP_COOLDOWN_MS

        logger.info("Rep %d of %s", self._state.rep_count, self._exercise.id)
        if self._session_logger is not None:
            self._session_logger.record_rep(self._state.rep_count, timestamp, self._state.form_score)
        self._notify_rep(self._state.rep_count)

    def _accumulate_hold(self, timestamp: float) -> None:
        """Whole seconds held become the rep count of a time-based exercise."""
        memory = self._memory
        if self._state.phase != ExercisePhase.HOLD:
            return
        if memory.last_hold_tick is None:
            memory.last_hold_tick = timestamp
            return

        delta = timestamp - memory.last_hold_tick
        memory.last_hold_tick = timestamp
        if delta <= 0:
            return

        memory.hold_duration_ms += delta
        seconds = int(memory.hold_duration_ms // 1000)
        if seconds > self._state.rep_count:
            self._state.rep_count = seconds
            self._state.last_rep_time = timestamp
            if self._session_logger is not None:
                self._session_logger.record_rep(seconds, timestamp, held=True)
            self._notify_rep(seconds)

    # ==================== SAFETY ====================

    def _update_pain(self, biometrics: BiometricSnapshot) -> None:
        alpha = self._settings.PAIN_EMA_ALPHA
        self._state.pain_score = alpha * biometrics.pain_score + (1 - alpha) * self._state.pain_score
        self._state.pain_analysis = biometrics.pain_analysis

    def _apply_safety_policy(self, biometrics: BiometricSnapshot, timestamp: float, has_angle: bool) -> None:
        memory = self._memory
        raw = biometrics.pain_analysis.pain_score_raw
        pain_level = max(0, min(100, round_half_up(self._state.pain_score)))

        if raw <= self._settings.ACUTE_PAIN_THRESHOLD:
            memory.acute_pain_start = None
            self._set_safety(SafetyStatus.SCANNING, pain_level)
            return

        at_peak = has_angle and self._kind.is_peak_exertion(self._state.current_angle, self._exercise)
        if at_peak:
            memory.acute_pain_start = None
            self._set_safety(SafetyStatus.EFFORT_DETECTED, pain_level)
            return

        if memory.acute_pain_start is None:
            memory.acute_pain_start = timestamp
            logger.warning("Acute pain signal at %s (raw %.1f)", timestamp, raw)
            if self._session_logger is not None:
                self._session_logger.record_safety("Acute pain signal", timestamp, raw=raw)

        if timestamp - memory.acute_pain_start > self._settings.ACUTE_PAIN_DURATION_MS:
            self._halt(pain_level, timestamp)
        else:
            self._set_safety(SafetyStatus.PAIN_ALERT, pain_level)

    def _set_safety(self, status: SafetyStatus, pain_level: int) -> None:
        self._state.safety_log = SafetyLog(
            status=status,
            pain_level=pain_level,
            ui_message=SAFETY_MESSAGES[status],
        )

    def _halt(self, pain_level: int, timestamp: float) -> None:
        self._memory.halted = True
        self._state.safety_log = SafetyLog(
            status=SafetyStatus.PAIN_ALERT,
            pain_level=pain_level,
            ui_message=HALT_MESSAGE,
            system_command=SystemCommand.HALT_WORKOUT,
        )
        logger.warning("Workout halted for %s at %s", self._exercise.id, timestamp)
        if self._session_logger is not None:
            self._session_logger.record_safety("Workout halted", timestamp, pain_level=pain_level)
        self._notify_halt(self._state.safety_log)

    # ==================== SUBSCRIPTIONS ====================

    def on_rep(self, callback: RepCallback) -> Callable[[], None]:
        """Subscribe to rep count changes; returns an unsubscribe function."""
        return self._subscribe(self._rep_callbacks, callback)

    def on_form_update(self, callback: FormCallback) -> Callable[[], None]:
        """Subscribe to per-frame form score updates."""
        return self._subscribe(self._form_callbacks, callback)

    def on_halt(self, callback: HaltCallback) -> Callable[[], None]:
        """Subscribe to the halt command."""
        return self._subscribe(self._halt_callbacks, callback)

    @staticmethod
    def _subscribe(callbacks: list, callback: Callable) -> Callable[[], None]:
        callbacks.append(callback)

        def unsubscribe():
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def _dispatch(self, callbacks: list, *args) -> None:
        for callback in list(callbacks):
            try:
                callback(*args)
            except Exception:
                logger.exception("Subscriber %r failed", callback)

    def _notify_rep(self, count: int) -> None:
        self._dispatch(self._rep_callbacks, count)

    def _notify_form(self, score: int, stresses: List[JointStress]) -> None:
        self._dispatch(self._form_callbacks, score, stresses)

    def _notify_halt(self, safety_log: SafetyLog) -> None:
        self._dispatch(self._halt_callbacks, replace(safety_log))

    # ==================== ACCESSORS ====================

    def get_state(self) -> ExerciseState:
        """Detached copy of the current state."""
        return self._state.copy()

    def get_elapsed_time(self) -> float:
        """Seconds since the session started (or was reset)."""
        return self._clock() - self._state.start_time

    def get_exercise(self) -> ExerciseDefinition:
        return self._exercise

    def get_sequence_for_dtw(self) -> Tuple[List[float], List[float]]:
        """
        Primary-angle trajectory for compare_angle_sequences.

        Returns:
            Tuple[angles, timestamps]
        """
        history = list(self._memory.angle_history)
        return [a for a, _ in history], [t for _, t in history]

    def finish_session(self) -> WorkoutSessionRecord:
        """Record of the session for the persistence layer; nothing is stored here."""
        record = WorkoutSessionRecord(
            date=datetime.now(),
            exercise_id=self._exercise.id,
            reps=self._state.rep_count,
            form_score=self._state.form_score,
            duration_seconds=max(0, round_half_up(self.get_elapsed_time())),
        )
        self._journal(LogCategory.SYSTEM, "Session finished", {
            'reps': record.reps,
            'form_score': record.form_score,
            'duration_seconds': record.duration_seconds,
        })
        return record

    def reset(self) -> None:
        """Return to the initial state; subscriptions are kept."""
        self._state = self._initial_state()
        self._memory = self._new_memory()
        logger.info("Exercise engine reset for %s", self._exercise.id)
        self._journal(LogCategory.SYSTEM, "Session reset")

    def _journal(self, category: LogCategory, message: str, data: Optional[dict] = None) -> None:
        if self._session_logger is not None:
            self._session_logger.info(category, message, data)
