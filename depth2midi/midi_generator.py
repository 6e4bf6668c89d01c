"""
MIDI file generation from detected key presses.

Converts note-on events and inferred note-offs from the key press pipeline
into a MIDI file using the midiutil library.

Features:
- Note-on/note-off pairing per pitch
- Sound volume to MIDI velocity mapping
- Hanging notes closed on save
"""
import logging
import os
from typing import Dict, Tuple

from midiutil.MidiFile import MIDIFile  # type: ignore


def volume_to_velocity(sound_volume: float) -> int:
    """Map a sound volume onto the MIDI velocity range 1-127."""
    return int(max(1, min(127, round(sound_volume))))


class MidiWriter:
    """Handles the creation and saving of MIDI data."""

    def __init__(self, tempo: int = 120, channel: int = 0, track_name: str = 'depth2midi Output',
                 remove_duplicates: bool = True):
        """
        Args:
            tempo: Tempo in BPM, used to convert seconds to beats
            channel: MIDI channel (0-15) for all notes
            track_name: Name of the single output track
            remove_duplicates: Whether midiutil should remove duplicate notes
        """
        self.logger = logging.getLogger(f"{__name__}.MidiWriter")
        self.tempo = tempo
        self.channel = channel
        self.track = 0
        self.note_count = 0

        # Active notes: {pitch: (start_beats, velocity)}
        self.active_notes: Dict[int, Tuple[float, int]] = {}

        self.mf = MIDIFile(numTracks=1,
                           removeDuplicates=remove_duplicates,
                           deinterleave=False,
                           adjust_origin=False,
                           file_format=1)
        self.mf.addTrackName(self.track, 0, track_name)
        self.mf.addTempo(self.track, 0, tempo)

    def seconds_to_beats(self, seconds: float) -> float:
        return seconds * self.tempo / 60.0

    def add_note_on(self, time_seconds: float, pitch: int, sound_volume: float) -> None:
        """
        Start a note. A note already sounding on the same pitch is closed first.

        Args:
            time_seconds: Session time of the press
            pitch: MIDI note number (0-127)
            sound_volume: Estimated key velocity (mapped to 1-127)
        """
        time = self.seconds_to_beats(time_seconds)
        if pitch in self.active_notes:
            self._close_note(pitch, time)
        self.active_notes[pitch] = (time, volume_to_velocity(sound_volume))

    def add_note_off(self, time_seconds: float, pitch: int) -> None:
        """Complete a sounding note; ignored when the pitch is not active."""
        if pitch in self.active_notes:
            self._close_note(pitch, self.seconds_to_beats(time_seconds))

    def _close_note(self, pitch: int, end_beats: float) -> None:
        start, velocity = self.active_notes.pop(pitch)
        duration = max(0.01, end_beats - start)  # Minimum duration to avoid zero-length notes
        self.mf.addNote(self.track, self.channel, pitch, start, duration, velocity)
        self.note_count += 1

    def finalize_active_notes(self, final_time_seconds: float = None) -> None:
        """
        Close any notes still sounding.

        Args:
            final_time_seconds: End time; if None each note gets half a beat
        """
        self.logger.info(f"[FINALIZE-NOTES] Closing {len(self.active_notes)} active notes")
        for pitch in list(self.active_notes):
            if final_time_seconds is not None:
                end = self.seconds_to_beats(final_time_seconds)
            else:
                end = self.active_notes[pitch][0] + 0.5
            self._close_note(pitch, end)

    def save_to_disk(self, filename: str) -> Tuple[bool, str]:
        """
        Close hanging notes and write the MIDI data to a file.

        Returns:
            A tuple (success, message).
        """
        self.finalize_active_notes()
        try:
            directory = os.path.dirname(filename)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(filename, 'wb') as outf:
                self.mf.writeFile(outf)
            self.logger.info(f"[MIDI-SAVE] {self.note_count} notes saved to {filename}")
            return True, f'Saved to disk: {filename}'
        except OSError as e:
            self.logger.error(f"[MIDI-SAVE] Failed to save {filename}: {e}", exc_info=True)
            return False, f'Error saving MIDI file: {e}'

    def save_file(self, filename: str) -> bool:
        """Alias for save_to_disk that returns only success status."""
        success, _ = self.save_to_disk(filename)
        return success
