"""
Centralized logging configuration for depth2midi.

One log file per run in a single log folder, optional console output, and
per-module levels so per-cycle pipeline chatter stays out of the log unless
asked for.
"""
import datetime
import logging
import os
import sys
from pathlib import Path
from typing import Dict, Optional

from depth2midi.app_config import APP_NAME, LOG_DIR


def _default_log_dir() -> str:
    override = os.getenv("DEPTH2MIDI_LOG_DIR")
    if override:
        return override

    # Prefer a project-local logs directory when running from a checkout.
    here = Path(__file__).resolve()
    for parent in here.parents:
        if (parent / ".git").exists() or (parent / "pyproject.toml").exists():
            return str(parent / LOG_DIR)

    if sys.platform == "win32":
        base = Path(os.getenv("LOCALAPPDATA") or (Path.home() / "AppData" / "Local")) / APP_NAME
        return str(base / LOG_DIR)
    if sys.platform == "darwin":
        return str(Path.home() / "Library" / "Logs" / APP_NAME)
    return str(Path.home() / f".{APP_NAME}" / LOG_DIR)


class LoggingConfig:
    """Centralized logging configuration manager."""

    DEFAULT_LEVEL = logging.WARNING

    LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'

    MODULE_LEVELS: Dict[str, int] = {
        'depth2midi.detection': logging.WARNING,
        'depth2midi.detection.key_state': logging.INFO,  # note-on events
        'depth2midi.workflows': logging.INFO,
        'depth2midi.frame_source': logging.INFO,
        'depth2midi.midi_generator': logging.INFO,

        # Third-party libraries - suppress most of their logs
        'numpy': logging.ERROR,
        'cv2': logging.ERROR,
        'midiutil': logging.ERROR,
    }

    _configured = False
    _log_filename = ""

    @classmethod
    def setup_logging(cls,
                      log_to_file: bool = True,
                      log_to_console: bool = False,
                      log_level: Optional[int] = None,
                      log_dir: Optional[str] = None) -> str:
        """
        Setup centralized logging configuration.

        Args:
            log_to_file: Whether to log to file
            log_to_console: Whether to log to console
            log_level: Override default log level (also lowers depth2midi modules to it)
            log_dir: Override default log directory

        Returns:
            Path to log file if logging to file, empty string otherwise
        """
        if cls._configured and cls._log_filename:
            return cls._log_filename

        root_level = log_level or cls.DEFAULT_LEVEL

        handlers = []
        log_filename = ""

        if log_to_file:
            log_dir = log_dir or _default_log_dir()
            os.makedirs(log_dir, exist_ok=True)
            log_filename = os.path.join(
                log_dir,
                f"run_{datetime.datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
            )
            file_handler = logging.FileHandler(log_filename, mode='w')
            file_handler.setFormatter(logging.Formatter(cls.LOG_FORMAT))
            handlers.append(file_handler)

        if log_to_console:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(logging.Formatter(cls.LOG_FORMAT))
            handlers.append(console_handler)

        logging.basicConfig(
            level=root_level,
            format=cls.LOG_FORMAT,
            handlers=handlers or None,
            force=True
        )

        for module_name, level in cls.MODULE_LEVELS.items():
            if module_name.startswith(APP_NAME) and log_level is not None:
                level = min(level, log_level)
            logging.getLogger(module_name).setLevel(level)

        logger = logging.getLogger(__name__)
        logger.info(f"Logging configured: level={logging.getLevelName(root_level)}, "
                    f"file={'yes' if log_to_file else 'no'}, "
                    f"console={'yes' if log_to_console else 'no'}")
        if log_to_file:
            logger.info(f"Log file: {log_filename}")

        cls._configured = True
        cls._log_filename = log_filename
        return log_filename
