"""Shared fixtures: a small synthetic keyboard seen head-on by the sensor."""
import numpy as np
import pytest

from depth2midi.core.app_state import (
    BackgroundConfig, CalibrationConfig, KeyboardConfig, PipelineState, SensorConfig,
)
from depth2midi.detection.pipeline import KeyPressPipeline

RAW_WIDTH = 80
RAW_HEIGHT = 60
BASE_DEPTH = 700

# 4 keys C, C#, D, D# laid out from x = 76 leftwards:
#   C [44, 54)  C# [54, 60)  D [60, 70)  D# [70, 76)
KEY_D = 2
KEY_D_COLUMNS = slice(60, 70)
KEY_D_ROWS = slice(0, 40)


def make_state() -> PipelineState:
    """Identity calibration over an 80x60 frame, no vertical smoothing."""
    return PipelineState(
        sensor=SensorConfig(raw_width=RAW_WIDTH, raw_height=RAW_HEIGHT, fps=30.0),
        calibration=CalibrationConfig(
            source_quad=[(0, 0), (RAW_WIDTH, 0), (0, RAW_HEIGHT), (RAW_WIDTH, RAW_HEIGHT)],
            warp_width=RAW_WIDTH,
            warp_height=RAW_HEIGHT,
        ),
        background=BackgroundConfig(vertical_box_height=1),
        keyboard=KeyboardConfig(
            num_keys=4,
            octave_offset=3,
            first_semitone=0,
            white_width=10,
            black_width=6,
            white_height=40,
            black_height=30,
            right_margin=4,
        ),
    )


def flat_frame(depth: int = BASE_DEPTH) -> np.ndarray:
    return np.full((RAW_HEIGHT, RAW_WIDTH), depth, dtype=np.uint16)


def pressed_frame(amount: int = 10) -> np.ndarray:
    """Key D pushed `amount` depth units away from the sensor."""
    frame = flat_frame()
    frame[KEY_D_ROWS, KEY_D_COLUMNS] = BASE_DEPTH + amount
    return frame


def hand_frame() -> np.ndarray:
    """A hand hovering over the right half of the frame, 50 units above the keys."""
    frame = flat_frame()
    frame[:, 40:] = BASE_DEPTH - 50
    return frame


@pytest.fixture
def pipeline_state():
    return make_state()


@pytest.fixture
def pipeline(pipeline_state):
    return KeyPressPipeline.from_state(pipeline_state)
