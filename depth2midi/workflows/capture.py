"""
Capture workflow.

Drives a session: polls the frame source, runs the key press pipeline once
per available frame, forwards note events to the MIDI writer and the optional
event log, and stops on request or when a finite source runs dry.

Cycles are strictly sequential. A cycle with no new frame within the wait
budget is skipped without touching any key state.
"""
import csv
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Set, Tuple

import numpy as np

from depth2midi.core.app_state import CaptureConfig
from depth2midi.detection.base import CycleResult
from depth2midi.detection.pipeline import KeyPressPipeline
from depth2midi.frame_source import FrameSource
from depth2midi.midi_generator import MidiWriter


@dataclass
class CaptureSummary:
    """Counters for a finished session."""
    processed_cycles: int = 0
    skipped_cycles: int = 0
    note_on_count: int = 0
    stopped_by_request: bool = False
    midi_saved: bool = False


class EventLogWriter:
    """CSV log of per-cycle key activity: one row per note-on or sounding key."""

    FIELDS = ["cycle", "key_id", "note", "octave", "depth", "average", "sound_volume", "note_on"]

    def __init__(self, path: str):
        self.path = path
        self._file = open(path, 'w', newline='', encoding='utf-8')
        self._writer = csv.writer(self._file)
        self._writer.writerow(self.FIELDS)

    def write_cycle(self, result: CycleResult) -> None:
        struck = {event.key_id for event in result.events}
        for snap in result.keys:
            if snap.key_id in struck or snap.is_sounding:
                self._writer.writerow([
                    result.cycle_index, snap.key_id, snap.note_name, snap.octave,
                    f"{snap.depth:.3f}", f"{snap.average:.3f}", f"{snap.sound_volume:.3f}",
                    int(snap.key_id in struck),
                ])

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()


class CaptureWorkflow:
    """
    Runs the acquisition/processing loop for one session.
    """

    def __init__(self,
                 pipeline: KeyPressPipeline,
                 source: FrameSource,
                 capture_config: Optional[CaptureConfig] = None,
                 fps: float = 30.0,
                 stop_event: Optional[threading.Event] = None):
        self.pipeline = pipeline
        self.source = source
        self.config = capture_config or CaptureConfig()
        self.fps = fps
        self.stop_event = stop_event or threading.Event()
        self.logger = logging.getLogger(f"{__name__}.CaptureWorkflow")

        self.midi_writer: Optional[MidiWriter] = None
        if self.config.midi_output_path:
            self.midi_writer = MidiWriter(tempo=self.config.midi_tempo, channel=self.config.midi_channel)

        self._sounding_pitches: Dict[int, int] = {}
        self.last_result: Optional[CycleResult] = None

    def request_stop(self) -> None:
        """Ask the loop to finish after the current cycle."""
        self.stop_event.set()

    def _acquire(self) -> Tuple[bool, Optional[np.ndarray]]:
        """Poll the source until a frame arrives or the wait budget is spent."""
        deadline = time.monotonic() + self.config.max_wait_ms / 1000.0
        while True:
            ready, frame = self.source.acquire_latest_frame()
            if ready:
                return True, frame
            if self.source.exhausted or time.monotonic() >= deadline:
                return False, None
            time.sleep(self.config.poll_interval_ms / 1000.0)

    def run(self,
            max_cycles: Optional[int] = None,
            progress_callback: Optional[Callable[[CycleResult], None]] = None) -> CaptureSummary:
        """
        Run until stopped, the source is exhausted, or max_cycles frames were processed.

        Args:
            max_cycles: Optional limit on processed (not skipped) cycles
            progress_callback: Called with every CycleResult

        Raises:
            FrameSourceError: If the source cannot be opened or read
            DetectionProcessingError: If a frame cannot be processed
        """
        summary = CaptureSummary()
        event_log = None

        self.logger.info(f"[CAPTURE] Opening frame source: {self.source.name}")
        self.source.open()
        try:
            if self.config.event_log_path:
                event_log = EventLogWriter(self.config.event_log_path)
                self.logger.info(f"[CAPTURE] Event log: {self.config.event_log_path}")

            while True:
                if self.stop_event.is_set():
                    summary.stopped_by_request = True
                    self.logger.info("[CAPTURE] Stop requested")
                    break
                if max_cycles is not None and summary.processed_cycles >= max_cycles:
                    break

                ready, frame = self._acquire()
                if not ready:
                    if self.source.exhausted:
                        self.logger.info("[CAPTURE] Frame source exhausted")
                        break
                    summary.skipped_cycles += 1
                    self.logger.debug("[CAPTURE] No frame available, cycle skipped")
                    continue

                result = self.pipeline.process_frame(frame)
                self.last_result = result
                summary.processed_cycles += 1
                summary.note_on_count += len(result.events)

                self._forward_to_midi(result)
                if event_log is not None:
                    event_log.write_cycle(result)
                if progress_callback is not None:
                    progress_callback(result)
        finally:
            self.source.close()
            if event_log is not None:
                event_log.close()

        if self.midi_writer is not None:
            # note times follow the pipeline's lifetime cycle counter
            end_time = self.pipeline.cycle_index / self.fps
            self.midi_writer.finalize_active_notes(end_time)
            self._sounding_pitches.clear()
            summary.midi_saved = self.midi_writer.save_file(self.config.midi_output_path)

        self.logger.info(
            f"[CAPTURE] Finished: processed={summary.processed_cycles} skipped={summary.skipped_cycles} "
            f"note_on={summary.note_on_count}"
        )
        return summary

    def _forward_to_midi(self, result: CycleResult) -> None:
        """Note-on for keys struck this cycle, note-off for keys that stopped sounding."""
        if self.midi_writer is None:
            return
        time_seconds = result.cycle_index / self.fps
        transpose = self.config.octave_transpose
        layout = self.pipeline.layout

        now_sounding: Set[int] = {snap.key_id for snap in result.keys if snap.is_sounding}
        for key_id in list(self._sounding_pitches):
            if key_id not in now_sounding:
                self.midi_writer.add_note_off(time_seconds, self._sounding_pitches.pop(key_id))

        for event in result.events:
            if event.key_id not in now_sounding:
                self.logger.debug(f"[CAPTURE] Note-on for key {event.key_id} with non-positive volume ignored")
                continue
            pitch = layout[event.key_id].get_midi_note_number(transpose)
            self.midi_writer.add_note_on(time_seconds, pitch, event.velocity)
            self._sounding_pitches[event.key_id] = pitch
