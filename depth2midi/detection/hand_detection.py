"""
Hand occlusion detection based on negative depth differences.

Hands resting over the keys produce depth signals that look like key presses.
Pixels that came closer to the overhead sensor than the reference surface
(negative difference beyond a margin) are flagged, cleaned up and grown so
the whole hand region is excluded from key-depth sampling. Growing the mask
also drops some genuine press signal next to the fingers; that loss is accepted.
"""
import logging

import cv2
import numpy as np

from .base import DetectionConfigError


def elliptical_element(radius: int) -> np.ndarray:
    """Elliptical structuring element of size (2r+1) x (2r+1)."""
    size = 2 * radius + 1
    return cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (size, size), (radius, radius))


class HandOcclusionMask:
    """Derives a boolean "hand present" mask from a difference frame."""

    def __init__(self,
                 margin: float = 6.0,
                 median_ksize: int = 5,
                 open_radius: int = 5,
                 dilate_radius: int = 15):
        """
        Args:
            margin: Depth units a pixel must rise above the reference to count as hand
            median_ksize: Median blur aperture (odd, >= 1; 1 disables)
            open_radius: Radius of the opening element (0 disables)
            dilate_radius: Radius of the dilation element (0 disables)
        """
        if median_ksize < 1 or median_ksize % 2 == 0:
            raise DetectionConfigError(f"Median kernel size must be odd and >= 1, got {median_ksize}")
        if open_radius < 0 or dilate_radius < 0:
            raise DetectionConfigError("Morphology radii must be non-negative")

        self.margin = float(margin)
        self.median_ksize = int(median_ksize)
        self.open_radius = int(open_radius)
        self.dilate_radius = int(dilate_radius)
        self._open_element = elliptical_element(self.open_radius) if self.open_radius > 0 else None
        self._dilate_element = elliptical_element(self.dilate_radius) if self.dilate_radius > 0 else None
        self.logger = logging.getLogger(f"{__name__}.HandOcclusionMask")

    def compute(self, difference: np.ndarray) -> np.ndarray:
        """Return a boolean mask, True where a hand is likely present."""
        hand = np.where(-difference > self.margin, 255, 0).astype(np.uint8)

        if not hand.any():
            return np.zeros(difference.shape, dtype=bool)

        if self.median_ksize > 1:
            hand = cv2.medianBlur(hand, self.median_ksize)
        if self._open_element is not None:
            hand = cv2.morphologyEx(hand, cv2.MORPH_OPEN, self._open_element)
        if self._dilate_element is not None:
            hand = cv2.dilate(hand, self._dilate_element)

        mask = hand > 0
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"[HAND-MASK] {int(mask.sum())} occluded pixels ({mask.mean() * 100:.1f}%)")
        return mask
