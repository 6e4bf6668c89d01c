"""
Application configuration constants and core data structures.

Defines the reference deployment constants (sensor resolution, keyboard
calibration quadrilateral, key geometry, press thresholds) and the PianoKey
data class used throughout the depth2midi pipeline.

Key Components:
- PianoKey: identity, keyboard-space geometry and runtime press state of one key
- Note naming constants (C-based, sharps)
- Reference calibration and key geometry defaults
- Logging and MIDI defaults
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from depth2midi.filters.depth_history import DepthHistory

# --- General App Config ---
APP_NAME = "depth2midi"
LOG_DIR = "logs"
DEFAULT_MIDI_TEMPO = 120
DEFAULT_MIDI_CHANNEL = 0

# --- Note Names ---
# Indexed by semitone, C = 0
NOTE_NAMES_SHARP = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
BLACK_SEMITONES = (1, 3, 6, 8, 10)

# --- Sensor ---
RAW_FRAME_WIDTH = 512
RAW_FRAME_HEIGHT = 424
SENSOR_FPS = 30.0

# --- Keyboard calibration (device pixels -> keyboard-space) ---
# Order matches the destination corners: top-left, top-right, bottom-left, bottom-right.
# The sensor image is mirrored, so the keyboard's left edge is on the image's right.
WARP_WIDTH = 505
WARP_HEIGHT = 120
DEFAULT_SOURCE_QUAD: List[Tuple[float, float]] = [
    (412.0, 124.0),
    (80.0, 122.0),
    (418.0, 203.0),
    (71.0, 198.0),
]

# --- Valid depth band (sensor units, mm) ---
MIN_DISTANCE = 600
MAX_DISTANCE = 800

# --- Depth smoothing ---
BILATERAL_DIAMETER = 3
BILATERAL_SIGMA_COLOR = 5.0
BILATERAL_SIGMA_SPACE = 5.0
VERTICAL_BOX_HEIGHT = 20

# --- Hand occlusion ---
HAND_MARGIN = 6.0
HAND_MEDIAN_KSIZE = 5
HAND_OPEN_RADIUS = 5
HAND_DILATE_RADIUS = 15

# --- Key geometry (keyboard-space pixels) ---
NUM_KEYS = 43
OCTAVE_OFFSET = 3
FIRST_SEMITONE = 10  # A#
WHITE_KEY_WIDTH = 13
BLACK_KEY_WIDTH = 9
WHITE_KEY_HEIGHT = 85
BLACK_KEY_HEIGHT = 60
RIGHT_MARGIN = 7

# --- Press thresholds (depth units) ---
MUTE_DISTANCE = 2.5
SOUND_DISTANCE = 4.5
VELOCITY_GAIN = 30.0
HISTORY_SIZE = 5


def is_black_semitone(semitone: int) -> bool:
    """True when the semitone (C = 0) is a black key."""
    return semitone % 12 in BLACK_SEMITONES


@dataclass
class PianoKey:
    """A single key: identity, keyboard-space rectangle and press state."""
    key_id: int
    semitone: int  # 0-11, C = 0
    octave: int
    is_black: bool
    x_start: int  # inclusive
    x_end: int    # exclusive
    height: int

    # --- runtime state, mutated once per cycle ---
    depth: float = 0.0
    history: DepthHistory = field(default_factory=lambda: DepthHistory(HISTORY_SIZE), repr=False)
    average: float = 0.0
    previous_average: float = 0.0
    sound_volume: float = 0.0
    occluded: bool = False

    @property
    def width(self) -> int:
        return self.x_end - self.x_start

    @property
    def note_name(self) -> str:
        return NOTE_NAMES_SHARP[self.semitone]

    @property
    def is_sounding(self) -> bool:
        return self.sound_volume > 0

    def get_full_note_name(self) -> str:
        """Returns the full note name like C4, F#3."""
        return f"{self.note_name}{self.octave}"

    def get_midi_note_number(self, octave_transpose: int = 0) -> int:
        """Calculates the MIDI note number (C4=60, A4=69, A0=21).

        Args:
            octave_transpose: Number of octaves to transpose
        """
        midi_note = (self.octave + octave_transpose) * 12 + self.semitone + 12

        if midi_note < 0:
            logging.warning(f"MIDI note {midi_note} for {self.get_full_note_name()} is below 0, clamping to 0")
            midi_note = 0
        elif midi_note > 127:
            logging.warning(f"MIDI note {midi_note} for {self.get_full_note_name()} is above 127, clamping to 127")
            midi_note = 127

        return midi_note

    def reset_state(self, history_size: Optional[int] = None) -> None:
        """Clear runtime state (used when the background is recaptured)."""
        self.depth = 0.0
        self.history = DepthHistory(history_size or self.history.capacity)
        self.average = 0.0
        self.previous_average = 0.0
        self.sound_volume = 0.0
        self.occluded = False

