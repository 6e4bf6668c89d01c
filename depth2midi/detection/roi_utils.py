"""
Shared utilities for key Region of Interest (ROI) extraction.

A key's ROI in keyboard-space is the rectangle of columns [x_start, x_end)
and rows [0, height), clipped to the frame.
"""
import logging
from typing import Optional, Tuple

import numpy as np

from depth2midi.app_config import PianoKey


def key_roi_bounds(key: PianoKey, frame_shape: Tuple[int, int]) -> Optional[Tuple[int, int, int, int]]:
    """
    Clip a key rectangle to the frame.

    Args:
        key: Key defining the region
        frame_shape: (height, width) of the frame

    Returns:
        (x1, y1, x2, y2) with x2/y2 exclusive, or None if nothing is inside the frame
    """
    frame_height, frame_width = frame_shape[:2]
    x1 = max(0, int(key.x_start))
    x2 = min(frame_width, int(key.x_end))
    y1 = 0
    y2 = min(frame_height, int(key.height))

    if x2 <= x1 or y2 <= y1:
        return None
    return x1, y1, x2, y2


def extract_key_roi(image: np.ndarray, key: PianoKey) -> Optional[np.ndarray]:
    """View of the image inside the key rectangle, or None if the key lies outside."""
    bounds = key_roi_bounds(key, image.shape)
    if bounds is None:
        logging.debug(f"Key {key.key_id} ROI is outside image or has no area.")
        return None
    x1, y1, x2, y2 = bounds
    return image[y1:y2, x1:x2]


def masked_mean(values: np.ndarray, exclude: np.ndarray) -> Optional[float]:
    """Mean of values where exclude is False; None when every pixel is excluded."""
    keep = ~exclude
    count = int(np.count_nonzero(keep))
    if count == 0:
        return None
    return float(values[keep].sum(dtype=np.float64) / count)
