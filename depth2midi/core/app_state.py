"""
Organized pipeline configuration with validation and clear ownership.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from depth2midi.app_config import (
    BILATERAL_DIAMETER, BILATERAL_SIGMA_COLOR, BILATERAL_SIGMA_SPACE,
    BLACK_KEY_HEIGHT, BLACK_KEY_WIDTH, DEFAULT_MIDI_CHANNEL, DEFAULT_MIDI_TEMPO,
    DEFAULT_SOURCE_QUAD, FIRST_SEMITONE, HAND_DILATE_RADIUS, HAND_MARGIN,
    HAND_MEDIAN_KSIZE, HAND_OPEN_RADIUS, HISTORY_SIZE, MAX_DISTANCE, MIN_DISTANCE,
    MUTE_DISTANCE, NUM_KEYS, OCTAVE_OFFSET, RAW_FRAME_HEIGHT, RAW_FRAME_WIDTH,
    RIGHT_MARGIN, SENSOR_FPS, SOUND_DISTANCE, VELOCITY_GAIN, VERTICAL_BOX_HEIGHT,
    WARP_HEIGHT, WARP_WIDTH, WHITE_KEY_HEIGHT, WHITE_KEY_WIDTH,
)


@dataclass
class SensorConfig:
    """Raw frame geometry and rate."""

    raw_width: int = RAW_FRAME_WIDTH
    raw_height: int = RAW_FRAME_HEIGHT
    fps: float = SENSOR_FPS

    def validate(self) -> List[str]:
        errors = []
        if self.raw_width <= 0 or self.raw_height <= 0:
            errors.append(f"Raw frame size {self.raw_width}x{self.raw_height} must be positive")
        if self.fps <= 0:
            errors.append("FPS must be positive")
        return errors


@dataclass
class CalibrationConfig:
    """Keyboard quadrilateral in device pixels and the rectified frame size."""

    source_quad: List[Tuple[float, float]] = field(default_factory=lambda: list(DEFAULT_SOURCE_QUAD))
    warp_width: int = WARP_WIDTH
    warp_height: int = WARP_HEIGHT

    def validate(self) -> List[str]:
        errors = []
        if len(self.source_quad) != 4:
            errors.append(f"Calibration needs 4 source points, got {len(self.source_quad)}")
        if self.warp_width <= 0 or self.warp_height <= 0:
            errors.append(f"Rectified size {self.warp_width}x{self.warp_height} must be positive")
        return errors


@dataclass
class ConditioningConfig:
    """Valid depth band and speckle filter settings."""

    min_distance: float = MIN_DISTANCE
    max_distance: float = MAX_DISTANCE
    bilateral_diameter: int = BILATERAL_DIAMETER
    bilateral_sigma_color: float = BILATERAL_SIGMA_COLOR
    bilateral_sigma_space: float = BILATERAL_SIGMA_SPACE

    def validate(self) -> List[str]:
        errors = []
        if self.min_distance < 0:
            errors.append("Minimum distance must be non-negative")
        if self.max_distance <= self.min_distance:
            errors.append(f"Maximum distance {self.max_distance} must exceed minimum distance {self.min_distance}")
        if self.bilateral_diameter < 0:
            errors.append("Bilateral diameter must be non-negative")
        return errors


@dataclass
class BackgroundConfig:
    """Vertical smoothing applied before background differencing."""

    vertical_box_height: int = VERTICAL_BOX_HEIGHT

    def validate(self) -> List[str]:
        errors = []
        if self.vertical_box_height < 1:
            errors.append(f"Vertical box height {self.vertical_box_height} must be >= 1")
        return errors


@dataclass
class OcclusionConfig:
    """Hand mask thresholds and morphology sizes."""

    margin: float = HAND_MARGIN
    median_ksize: int = HAND_MEDIAN_KSIZE
    open_radius: int = HAND_OPEN_RADIUS
    dilate_radius: int = HAND_DILATE_RADIUS

    def validate(self) -> List[str]:
        errors = []
        if self.margin < 0:
            errors.append("Hand margin must be non-negative")
        if self.median_ksize < 1 or self.median_ksize % 2 == 0:
            errors.append(f"Median kernel size {self.median_ksize} must be odd and >= 1")
        if self.open_radius < 0 or self.dilate_radius < 0:
            errors.append("Morphology radii must be non-negative")
        return errors


@dataclass
class KeyboardConfig:
    """Key geometry constants in keyboard-space pixels."""

    num_keys: int = NUM_KEYS
    octave_offset: int = OCTAVE_OFFSET
    first_semitone: int = FIRST_SEMITONE
    white_width: int = WHITE_KEY_WIDTH
    black_width: int = BLACK_KEY_WIDTH
    white_height: int = WHITE_KEY_HEIGHT
    black_height: int = BLACK_KEY_HEIGHT
    right_margin: int = RIGHT_MARGIN

    def validate(self) -> List[str]:
        errors = []
        if not 1 <= self.num_keys <= 128:
            errors.append(f"Total keys {self.num_keys} must be between 1 and 128")
        if not 0 <= self.first_semitone <= 11:
            errors.append(f"First semitone {self.first_semitone} must be between 0 and 11")
        if self.octave_offset < -1 or self.octave_offset > 9:
            errors.append(f"Octave offset {self.octave_offset} must be between -1 and 9")
        if self.white_width < 1 or self.black_width < 1:
            errors.append("Key widths must be >= 1")
        if self.white_height < 1 or self.black_height < 1:
            errors.append("Key heights must be >= 1")
        if self.right_margin < 0:
            errors.append("Right margin must be non-negative")
        return errors


@dataclass
class ThresholdConfig:
    """Press hysteresis and velocity scaling."""

    mute_distance: float = MUTE_DISTANCE
    sound_distance: float = SOUND_DISTANCE
    velocity_gain: float = VELOCITY_GAIN
    history_size: int = HISTORY_SIZE

    def validate(self) -> List[str]:
        errors = []
        if self.mute_distance > self.sound_distance:
            errors.append(f"Mute distance {self.mute_distance} must not exceed sound distance {self.sound_distance}")
        if self.velocity_gain <= 0:
            errors.append("Velocity gain must be positive")
        if self.history_size < 1:
            errors.append(f"History size {self.history_size} must be >= 1")
        return errors


@dataclass
class CaptureConfig:
    """Acquisition loop and output settings."""

    max_wait_ms: float = 30.0
    poll_interval_ms: float = 2.0
    midi_tempo: int = DEFAULT_MIDI_TEMPO
    midi_channel: int = DEFAULT_MIDI_CHANNEL
    octave_transpose: int = 0
    midi_output_path: Optional[str] = None
    event_log_path: Optional[str] = None

    def validate(self) -> List[str]:
        errors = []
        if self.max_wait_ms < 0:
            errors.append("Maximum wait must be non-negative")
        if self.poll_interval_ms <= 0:
            errors.append("Poll interval must be positive")
        if not 20 <= self.midi_tempo <= 300:
            errors.append(f"Tempo {self.midi_tempo} should be between 20 and 300 BPM")
        if not 0 <= self.midi_channel <= 15:
            errors.append(f"MIDI channel {self.midi_channel} must be between 0 and 15")
        if not -8 <= self.octave_transpose <= 8:
            errors.append(f"Octave transpose {self.octave_transpose} must be between -8 and +8")
        return errors


@dataclass
class PipelineState:
    """All configuration groups of one capture session."""

    sensor: SensorConfig = field(default_factory=SensorConfig)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    conditioning: ConditioningConfig = field(default_factory=ConditioningConfig)
    background: BackgroundConfig = field(default_factory=BackgroundConfig)
    occlusion: OcclusionConfig = field(default_factory=OcclusionConfig)
    keyboard: KeyboardConfig = field(default_factory=KeyboardConfig)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)

    def validate(self) -> List[str]:
        """Validate every group and return all error messages."""
        errors: List[str] = []
        for group in (self.sensor, self.calibration, self.conditioning, self.background,
                      self.occlusion, self.keyboard, self.thresholds, self.capture):
            errors.extend(group.validate())
        if errors:
            logging.getLogger(__name__).warning(f"[PIPELINE-STATE] {len(errors)} configuration errors")
        return errors
