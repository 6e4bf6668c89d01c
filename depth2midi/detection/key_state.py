"""
Per-key press state machine with mute/sound hysteresis.

Each cycle a key's depth sample goes into its rolling history; the rolling
average then drives the transitions:

1. average < mute_distance: sound volume cleared (released, re-armed)
2. average > sound_distance and not sounding: volume = rise of the average
   since last cycle x velocity_gain, note-on emitted
3. otherwise: unchanged

The velocity therefore scores how fast the average crossed the threshold,
not how deep the key went. A key drifting slowly past sound_distance gets a
small volume; a sharp jump gets a large one.
"""
import logging
from typing import Optional

from depth2midi.app_config import PianoKey

from .base import DetectionConfigError, KeySnapshot, KeyState, NoteOnEvent


class KeyStateMachine:
    """Applies the press transitions to PianoKey runtime state."""

    def __init__(self,
                 mute_distance: float = 2.5,
                 sound_distance: float = 4.5,
                 velocity_gain: float = 30.0):
        if mute_distance > sound_distance:
            raise DetectionConfigError(
                f"Mute distance {mute_distance} must not exceed sound distance {sound_distance}"
            )
        self.mute_distance = float(mute_distance)
        self.sound_distance = float(sound_distance)
        self.velocity_gain = float(velocity_gain)
        self.logger = logging.getLogger(f"{__name__}.KeyStateMachine")

    def observe(self, key: PianoKey, depth: float, occluded: bool = False) -> Optional[NoteOnEvent]:
        """Record a depth sample, refresh the rolling average and evaluate transitions."""
        key.depth = depth
        key.occluded = occluded
        key.history.push(depth)
        return self.evaluate(key, key.history.mean())

    def evaluate(self, key: PianoKey, average: float) -> Optional[NoteOnEvent]:
        """
        Apply the transitions for a new rolling average.

        Returns:
            NoteOnEvent when the key starts sounding this cycle, else None
        """
        key.previous_average = key.average
        key.average = average

        if average < self.mute_distance:
            key.sound_volume = 0.0
            return None

        if average > self.sound_distance and key.sound_volume == 0:
            key.sound_volume = (average - key.previous_average) * self.velocity_gain
            event = NoteOnEvent(
                key_id=key.key_id,
                note_name=key.note_name,
                octave=key.octave,
                velocity=key.sound_volume,
                midi_note=key.get_midi_note_number(),
            )
            self.logger.info(f"[KEY-STATE] Note on {key.get_full_note_name()} velocity={key.sound_volume:.2f}")
            return event

        return None

    def state_of(self, key: PianoKey) -> KeyState:
        if key.sound_volume > 0:
            return KeyState.SOUNDING
        if key.average < self.mute_distance:
            return KeyState.IDLE
        return KeyState.ARMED

    def snapshot(self, key: PianoKey) -> KeySnapshot:
        return KeySnapshot(
            key_id=key.key_id,
            note_name=key.note_name,
            octave=key.octave,
            depth=key.depth,
            average=key.average,
            sound_volume=key.sound_volume,
            is_sounding=key.is_sounding,
            occluded=key.occluded,
            state=self.state_of(key),
        )
