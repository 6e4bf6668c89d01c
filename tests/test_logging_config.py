import logging
import os

import pytest

from depth2midi.core.logging_config import LoggingConfig


@pytest.fixture
def clean_logging(monkeypatch):
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    monkeypatch.setattr(LoggingConfig, "_configured", False)
    monkeypatch.setattr(LoggingConfig, "_log_filename", "")
    yield
    for handler in root.handlers[:]:
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_level)


def test_log_file_created(clean_logging, tmp_path):
    log_file = LoggingConfig.setup_logging(log_to_file=True, log_dir=str(tmp_path))

    assert os.path.dirname(log_file) == str(tmp_path)
    assert os.path.basename(log_file).startswith("run_")
    assert os.path.exists(log_file)


def test_log_level_lowers_package_modules(clean_logging):
    LoggingConfig.setup_logging(log_to_file=False, log_level=logging.DEBUG)

    assert logging.getLogger("depth2midi.detection").level == logging.DEBUG
    assert logging.getLogger("cv2").level == logging.ERROR


def test_env_override_for_log_dir(clean_logging, tmp_path, monkeypatch):
    monkeypatch.setenv("DEPTH2MIDI_LOG_DIR", str(tmp_path / "logs"))

    log_file = LoggingConfig.setup_logging(log_to_file=True)

    assert log_file.startswith(str(tmp_path / "logs"))
