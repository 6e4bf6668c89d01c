"""
Per-key depth estimation from the difference frame.

Each key's sample is the mean difference over its rectangle, ignoring pixels
covered by the hand occlusion mask. Keys are estimated independently; no key
reads another key's state.
"""
import logging
from dataclasses import dataclass
from typing import List

import numpy as np

from .base import DetectionProcessingError
from .key_layout import KeyboardLayout
from .roi_utils import extract_key_roi, masked_mean


@dataclass(frozen=True)
class KeyDepthSample:
    """One key's depth sample for one cycle."""
    key_id: int
    value: float
    occluded: bool  # True when the whole rectangle was masked and value was held


class KeyDepthEstimator:
    """
    Masked-mean depth sampler for every key of a layout.

    Fully occluded keys hold their previous sample and are flagged
    `occluded`; keys outside the frame are treated the same way.
    """

    def __init__(self, layout: KeyboardLayout):
        self.layout = layout
        self.logger = logging.getLogger(f"{__name__}.KeyDepthEstimator")

    def estimate(self, difference: np.ndarray, occlusion: np.ndarray) -> List[KeyDepthSample]:
        """
        Args:
            difference: Signed difference frame (keyboard-space)
            occlusion: Boolean hand mask of the same shape

        Returns:
            One sample per key, in key order
        """
        if difference.shape != occlusion.shape:
            raise DetectionProcessingError(
                f"Difference {difference.shape} and occlusion {occlusion.shape} shapes differ"
            )

        samples: List[KeyDepthSample] = []
        for key in self.layout:
            roi = extract_key_roi(difference, key)
            value = None
            if roi is not None:
                value = masked_mean(roi, extract_key_roi(occlusion, key))

            if value is None:
                self.logger.debug(f"[KEY-DEPTH] Key {key.key_id} ({key.get_full_note_name()}) fully occluded, holding {key.depth:.2f}")
                samples.append(KeyDepthSample(key.key_id, key.depth, True))
            else:
                samples.append(KeyDepthSample(key.key_id, value, False))
        return samples
