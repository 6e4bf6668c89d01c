"""
Depth frame sources.

The pipeline only sees the FrameSource interface, so any sensor SDK can be
plugged in behind it. Two sources ship with the package:

- ArrayFrameSource: in-memory frames, for synthetic sessions and tests
- ReplayFrameSource: a recorded session of .npy arrays or 16-bit PNG images

`acquire_latest_frame()` is a non-blocking poll returning (ready, frame),
matching the (success, frame) convention of OpenCV captures.
"""
import glob
import logging
import os
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Tuple

import cv2
import numpy as np

from depth2midi.detection.base import FrameSourceError


class FrameSource(ABC):
    """Abstract depth frame provider."""

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def open(self) -> None:
        """
        Prepare the source for acquisition.

        Raises:
            FrameSourceError: If the source is unavailable
        """
        pass

    @abstractmethod
    def acquire_latest_frame(self) -> Tuple[bool, Optional[np.ndarray]]:
        """
        Poll for a new frame without blocking.

        Returns:
            (True, uint16 depth frame) when a new frame is ready, (False, None) otherwise
        """
        pass

    @property
    def exhausted(self) -> bool:
        """True once a finite source has no more frames to deliver."""
        return False

    def close(self) -> None:
        pass

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class ArrayFrameSource(FrameSource):
    """
    Replays frames held in memory.

    A None entry models a poll where the sensor had nothing new.
    """

    def __init__(self, frames: Iterable[Optional[np.ndarray]]):
        super().__init__("Array Source")
        self._frames: List[Optional[np.ndarray]] = list(frames)
        self._position = 0

    def acquire_latest_frame(self) -> Tuple[bool, Optional[np.ndarray]]:
        if self._position >= len(self._frames):
            return False, None
        frame = self._frames[self._position]
        self._position += 1
        if frame is None:
            return False, None
        return True, frame

    @property
    def exhausted(self) -> bool:
        return self._position >= len(self._frames)


class ReplayFrameSource(FrameSource):
    """
    Replays a recorded session from disk.

    Pattern examples:
        - "/path/to/session/depth_*.npy"
        - "/path/to/session/depth_*.png"  (16-bit single channel)
    """

    SUPPORTED_EXTENSIONS = ('.npy', '.png', '.tif', '.tiff')

    def __init__(self, pattern: str):
        super().__init__("Replay Source")
        self.pattern = pattern
        self.frame_files: List[str] = []
        self._position = 0

    def open(self) -> None:
        if os.path.isdir(self.pattern):
            candidates = sorted(glob.glob(os.path.join(self.pattern, '*')))
        else:
            candidates = sorted(glob.glob(self.pattern))
        self.frame_files = [f for f in candidates if f.lower().endswith(self.SUPPORTED_EXTENSIONS)]
        self._position = 0

        if not self.frame_files:
            raise FrameSourceError(f"No depth frames found matching pattern: {self.pattern}")

        self.logger.info(f"Loaded recording: {len(self.frame_files)} frames from {self.pattern}")

    def _load(self, path: str) -> np.ndarray:
        if path.lower().endswith('.npy'):
            frame = np.load(path)
        else:
            frame = cv2.imread(path, cv2.IMREAD_ANYDEPTH)
        if frame is None:
            raise FrameSourceError(f"Failed to load depth frame: {path}")
        if frame.ndim != 2:
            raise FrameSourceError(f"Depth frame {path} must be single channel, got shape {frame.shape}")
        return frame.astype(np.uint16, copy=False)

    def acquire_latest_frame(self) -> Tuple[bool, Optional[np.ndarray]]:
        if self._position >= len(self.frame_files):
            return False, None
        path = self.frame_files[self._position]
        self._position += 1
        return True, self._load(path)

    @property
    def exhausted(self) -> bool:
        return self._position >= len(self.frame_files)

    @property
    def total_frames(self) -> int:
        return len(self.frame_files)


def save_recording(frames: Iterable[np.ndarray], output_dir: str, prefix: str = "depth") -> List[str]:
    """Write frames as numbered .npy files readable by ReplayFrameSource."""
    os.makedirs(output_dir, exist_ok=True)
    paths = []
    for index, frame in enumerate(frames):
        path = os.path.join(output_dir, f"{prefix}_{index:06d}.npy")
        np.save(path, np.asarray(frame, dtype=np.uint16))
        paths.append(path)
    logging.getLogger(__name__).info(f"Saved {len(paths)} frames to {output_dir}")
    return paths
