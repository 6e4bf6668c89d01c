"""
Static keyboard geometry in keyboard-space.

Keys are laid out right-to-left from the right edge of the rectified frame
(minus a margin), each key taking the white or black key width, so the
x-ranges are contiguous and ordered left-to-right by key_id.
"""
import logging
from typing import List, Tuple

from depth2midi.app_config import PianoKey, is_black_semitone

from .base import DetectionConfigError


class KeyboardLayout:
    """Builds and owns the N piano keys of the configured keyboard span."""

    def __init__(self,
                 num_keys: int,
                 warp_width: int,
                 octave_offset: int = 3,
                 first_semitone: int = 10,
                 white_width: int = 13,
                 black_width: int = 9,
                 white_height: int = 85,
                 black_height: int = 60,
                 right_margin: int = 7,
                 history_size: int = 5):
        if num_keys < 1:
            raise DetectionConfigError(f"Keyboard needs at least one key, got {num_keys}")
        if white_width < 1 or black_width < 1:
            raise DetectionConfigError("Key widths must be >= 1")
        if white_height < 1 or black_height < 1:
            raise DetectionConfigError("Key heights must be >= 1")
        if not 0 <= first_semitone <= 11:
            raise DetectionConfigError(f"First semitone must be 0-11, got {first_semitone}")

        self.num_keys = num_keys
        self.warp_width = warp_width
        self.octave_offset = octave_offset
        self.first_semitone = first_semitone
        self.white_width = white_width
        self.black_width = black_width
        self.white_height = white_height
        self.black_height = black_height
        self.right_margin = right_margin
        self.history_size = history_size
        self.logger = logging.getLogger(f"{__name__}.KeyboardLayout")

        self.keys: List[PianoKey] = self._build_keys()

        start, end = self.span
        if start < 0 or end > warp_width:
            raise DetectionConfigError(
                f"Keyboard span [{start}, {end}) does not fit in rectified width {warp_width}"
            )
        self.logger.info(
            f"[KEY-LAYOUT] {num_keys} keys from {self.keys[0].get_full_note_name()} "
            f"to {self.keys[-1].get_full_note_name()}, span [{start}, {end})"
        )

    def _build_keys(self) -> List[PianoKey]:
        keys: List[PianoKey] = []
        right = self.warp_width - self.right_margin
        for key_id in range(self.num_keys - 1, -1, -1):
            absolute = key_id + self.first_semitone
            semitone = absolute % 12
            black = is_black_semitone(semitone)
            left = right - (self.black_width if black else self.white_width)
            keys.append(PianoKey(
                key_id=key_id,
                semitone=semitone,
                octave=self.octave_offset + absolute // 12,
                is_black=black,
                x_start=left,
                x_end=right,
                height=self.black_height if black else self.white_height,
            ))
            right = left
        keys.reverse()
        for key in keys:
            key.reset_state(self.history_size)
        return keys

    @property
    def span(self) -> Tuple[int, int]:
        """Keyboard-space x-interval [start, end) covered by all keys."""
        return self.keys[0].x_start, self.keys[-1].x_end

    def reset_state(self) -> None:
        for key in self.keys:
            key.reset_state(self.history_size)

    def __len__(self):
        return len(self.keys)

    def __iter__(self):
        return iter(self.keys)

    def __getitem__(self, key_id: int) -> PianoKey:
        return self.keys[key_id]
