#!/usr/bin/env python3
"""
Command-line entry point for depth2midi.

Configures startup logging, loads the session configuration, replays a
recorded depth session through the key press pipeline and writes the detected
notes to a MIDI file.
"""
import argparse
import logging
import os
import signal
import sys
import threading

# Ensure the local package is importable (run.py lives next to the package directory)
current_dir = os.path.dirname(os.path.abspath(__file__))
if current_dir not in sys.path:
    sys.path.insert(0, current_dir)

from depth2midi.core.logging_config import LoggingConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="depth2midi",
        description="Detect piano key presses and velocities from a recorded depth session.",
    )
    parser.add_argument("recording", help="Directory or glob pattern of depth frames (.npy / 16-bit .png)")
    parser.add_argument("-c", "--config", help="INI configuration file")
    parser.add_argument("-o", "--midi-output", help="MIDI file to write")
    parser.add_argument("--event-log", help="CSV file for per-cycle key activity")
    parser.add_argument("--max-cycles", type=int, default=None, help="Stop after this many processed frames")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--no-log-file", action="store_true", help="Log to the console only")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    log_file = LoggingConfig.setup_logging(
        log_to_file=not args.no_log_file,
        log_to_console=True,
        log_level=getattr(logging, args.log_level),
    )
    logger = logging.getLogger(__name__)
    logger.info("=" * 80)
    logger.info("depth2midi Starting")
    logger.info("=" * 80)
    logger.info("Python version: %s", sys.version)
    logger.info("Log file: %s", log_file or "(console only)")

    from depth2midi.config_manager import ConfigManager
    from depth2midi.detection.base import DetectionError
    from depth2midi.detection.pipeline import KeyPressPipeline
    from depth2midi.frame_source import ReplayFrameSource
    from depth2midi.workflows.capture import CaptureWorkflow

    stop_event = threading.Event()
    # Ctrl+C ends the session at the next cycle boundary
    signal.signal(signal.SIGINT, lambda signum, frame: stop_event.set())
    try:
        manager = ConfigManager()
        if args.config:
            manager.load_config(args.config)
        state = manager.state
        if args.midi_output:
            state.capture.midi_output_path = args.midi_output
        if args.event_log:
            state.capture.event_log_path = args.event_log

        pipeline = KeyPressPipeline.from_state(state)
        workflow = CaptureWorkflow(
            pipeline,
            ReplayFrameSource(args.recording),
            capture_config=state.capture,
            fps=state.sensor.fps,
            stop_event=stop_event,
        )
        summary = workflow.run(max_cycles=args.max_cycles)
    except DetectionError as e:
        logger.error(f"Fatal: {e}")
        return 1

    logger.info(
        f"Session complete: {summary.processed_cycles} frames, {summary.skipped_cycles} skipped, "
        f"{summary.note_on_count} note-on events"
    )
    if state.capture.midi_output_path and not summary.midi_saved:
        logger.error(f"MIDI file could not be written: {state.capture.midi_output_path}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
