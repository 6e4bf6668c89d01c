"""
Base types shared by all pipeline stages.

Holds the per-cycle result container handed to presentation and export
collaborators, the note-on event record, and the detection exception
hierarchy.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import numpy as np


class KeyState(Enum):
    """Derived per-key state of the press state machine."""
    IDLE = "idle"          # rolling average below the mute threshold
    ARMED = "armed"        # between thresholds, not sounding
    SOUNDING = "sounding"  # sound volume > 0


@dataclass(frozen=True)
class NoteOnEvent:
    """A key struck with an estimated velocity."""
    key_id: int
    note_name: str
    octave: int
    velocity: float
    midi_note: int


@dataclass(frozen=True)
class KeySnapshot:
    """Read-only view of one key after a cycle."""
    key_id: int
    note_name: str
    octave: int
    depth: float
    average: float
    sound_volume: float
    is_sounding: bool
    occluded: bool
    state: KeyState


@dataclass
class CycleResult:
    """
    Container for one processed cycle.

    The frames are owned by the result; the pipeline does not reuse them
    across cycles.
    """
    cycle_index: int
    rectified: np.ndarray
    difference: np.ndarray
    occlusion: np.ndarray
    normalized: np.ndarray
    keys: List[KeySnapshot]
    events: List[NoteOnEvent] = field(default_factory=list)
    is_reference: bool = False
    processing_time_ms: Optional[float] = None

    def __len__(self):
        """Number of note-on events emitted this cycle."""
        return len(self.events)

    def __iter__(self):
        """Iterate over note-on events in key order."""
        return iter(self.events)

    def __contains__(self, key_id: int):
        """Check if a key emitted a note-on this cycle."""
        return any(event.key_id == key_id for event in self.events)

    def sounding_keys(self) -> Dict[int, KeySnapshot]:
        return {snap.key_id: snap for snap in self.keys if snap.is_sounding}


class DetectionError(Exception):
    """Base exception for detection-related errors."""
    pass


class DetectionConfigError(DetectionError):
    """Exception raised for detection configuration errors."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or []


class CalibrationError(DetectionConfigError):
    """Exception raised when the keyboard calibration geometry is degenerate."""
    pass


class FrameSourceError(DetectionError):
    """Exception raised when a frame source cannot be opened or read."""
    pass


class DetectionProcessingError(DetectionError):
    """Exception raised during frame processing."""
    pass
