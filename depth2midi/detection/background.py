"""
Background model: reference capture and per-cycle depth difference.

The first rectified frame becomes the reference surface. Every later frame is
compared against it. The sensor looks down on the keyboard, so a key going down
reads as a larger depth and gives a positive difference; anything raised above
the keys (a hand) gives a negative one. The reference is never refreshed
automatically, so long sessions are exposed to sensor drift; use
`recalibrate()` to recapture.
"""
import logging
from typing import Optional

import cv2
import numpy as np

from .base import DetectionProcessingError


class BackgroundModel:
    """Holds the reference frame and produces difference frames."""

    def __init__(self, box_height: int = 20):
        """
        Args:
            box_height: Rows in the vertical averaging window (<= 1 disables it)
        """
        self.box_height = int(box_height)
        self.logger = logging.getLogger(f"{__name__}.BackgroundModel")
        self._reference: Optional[np.ndarray] = None
        self._kernel = None
        if self.box_height > 1:
            self._kernel = np.ones((self.box_height, 1), dtype=np.float32) / self.box_height

    @property
    def has_reference(self) -> bool:
        return self._reference is not None

    @property
    def reference(self) -> Optional[np.ndarray]:
        return self._reference

    def box_filter(self, rectified: np.ndarray) -> np.ndarray:
        """Unweighted vertical average along each column."""
        if self._kernel is None:
            return rectified.astype(np.float32)
        return cv2.filter2D(rectified.astype(np.float32), cv2.CV_32F, self._kernel)

    def update(self, rectified: np.ndarray) -> np.ndarray:
        """
        Filter the rectified frame and return its difference from the reference.

        On the first call (or the first call after `recalibrate()`) the filtered
        frame is stored as the reference and an all-zero difference is returned.

        Raises:
            DetectionProcessingError: If the frame size differs from the reference
        """
        return self.difference(self.box_filter(rectified))

    def difference(self, filtered: np.ndarray) -> np.ndarray:
        """Difference of an already box-filtered frame against the reference (captures it if unset)."""
        if self._reference is None:
            self._reference = filtered.copy()
            self.logger.info(f"[BACKGROUND] Reference frame captured ({filtered.shape[1]}x{filtered.shape[0]})")
            return np.zeros_like(filtered)

        if filtered.shape != self._reference.shape:
            raise DetectionProcessingError(
                f"Rectified frame shape {filtered.shape} does not match reference {self._reference.shape}"
            )
        return filtered - self._reference

    def recalibrate(self) -> None:
        """Drop the reference; the next update captures a new one."""
        self.logger.info("[BACKGROUND] Reference frame cleared, will recapture on next cycle")
        self._reference = None
