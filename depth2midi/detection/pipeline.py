"""
Per-frame key press pipeline.

Algorithm (one cycle):
1. Condition the raw depth frame (bilateral filter, valid-band clamp)
2. Rectify into keyboard-space
3. Vertical box filter, then difference against the reference frame
4. Hand occlusion mask from the difference
5. Masked mean depth per key
6. Rolling average and press state machine for every key

Step 6 only starts once every key's sample for the cycle is known, so the
returned snapshot is consistent across keys.
"""
import logging
import time
from typing import List, Optional, Tuple

import numpy as np

from depth2midi.core.app_state import PipelineState

from .background import BackgroundModel
from .base import CycleResult, DetectionConfigError, DetectionProcessingError, NoteOnEvent
from .conditioner import DepthConditioner
from .hand_detection import HandOcclusionMask
from .key_depth import KeyDepthEstimator
from .key_layout import KeyboardLayout
from .key_state import KeyStateMachine
from .rectifier import GeometryRectifier


class KeyPressPipeline:
    """Turns raw depth frames into per-key state and note-on events."""

    def __init__(self,
                 conditioner: DepthConditioner,
                 rectifier: GeometryRectifier,
                 background: BackgroundModel,
                 occlusion: HandOcclusionMask,
                 layout: KeyboardLayout,
                 state_machine: KeyStateMachine,
                 raw_shape: Optional[Tuple[int, int]] = None):
        """
        Args:
            raw_shape: Expected (height, width) of raw frames; None accepts any size
        """
        self.conditioner = conditioner
        self.rectifier = rectifier
        self.background = background
        self.occlusion = occlusion
        self.layout = layout
        self.state_machine = state_machine
        self.estimator = KeyDepthEstimator(layout)
        self.raw_shape = raw_shape
        self.cycle_index = 0
        self.logger = logging.getLogger(f"{__name__}.KeyPressPipeline")

    @classmethod
    def from_state(cls, state: PipelineState) -> "KeyPressPipeline":
        """
        Build every stage from a validated configuration.

        Raises:
            DetectionConfigError: If the configuration is invalid
            CalibrationError: If the calibration geometry is degenerate
        """
        errors = state.validate()
        if errors:
            raise DetectionConfigError(
                f"Invalid configuration ({len(errors)} errors): " + "; ".join(errors), errors
            )

        cal = state.calibration
        cond = state.conditioning
        occ = state.occlusion
        kb = state.keyboard
        thr = state.thresholds

        return cls(
            conditioner=DepthConditioner(
                cond.min_distance, cond.max_distance,
                cond.bilateral_diameter, cond.bilateral_sigma_color, cond.bilateral_sigma_space,
            ),
            rectifier=GeometryRectifier(cal.source_quad, (cal.warp_width, cal.warp_height)),
            background=BackgroundModel(state.background.vertical_box_height),
            occlusion=HandOcclusionMask(occ.margin, occ.median_ksize, occ.open_radius, occ.dilate_radius),
            layout=KeyboardLayout(
                num_keys=kb.num_keys,
                warp_width=cal.warp_width,
                octave_offset=kb.octave_offset,
                first_semitone=kb.first_semitone,
                white_width=kb.white_width,
                black_width=kb.black_width,
                white_height=kb.white_height,
                black_height=kb.black_height,
                right_margin=kb.right_margin,
                history_size=thr.history_size,
            ),
            state_machine=KeyStateMachine(thr.mute_distance, thr.sound_distance, thr.velocity_gain),
            raw_shape=(state.sensor.raw_height, state.sensor.raw_width),
        )

    def process_frame(self, frame: np.ndarray) -> CycleResult:
        """
        Run one full cycle on a raw depth frame.

        Raises:
            DetectionProcessingError: If the frame has the wrong shape
        """
        if frame.ndim != 2:
            raise DetectionProcessingError(f"Depth frame must be 2-D, got shape {frame.shape}")
        if self.raw_shape is not None and frame.shape != tuple(self.raw_shape):
            raise DetectionProcessingError(
                f"Depth frame shape {frame.shape} does not match configured {tuple(self.raw_shape)}"
            )

        start = time.perf_counter()
        is_reference = not self.background.has_reference

        conditioned = self.conditioner.condition(frame)
        rectified = self.rectifier.rectify(conditioned)
        filtered = self.background.box_filter(rectified)
        difference = self.background.difference(filtered)
        occlusion = self.occlusion.compute(difference)

        samples = self.estimator.estimate(difference, occlusion)

        events: List[NoteOnEvent] = []
        for key, sample in zip(self.layout, samples):
            event = self.state_machine.observe(key, sample.value, sample.occluded)
            if event is not None:
                events.append(event)

        result = CycleResult(
            cycle_index=self.cycle_index,
            rectified=rectified,
            difference=difference,
            occlusion=occlusion,
            normalized=self.conditioner.normalize(filtered),
            keys=[self.state_machine.snapshot(key) for key in self.layout],
            events=events,
            is_reference=is_reference,
            processing_time_ms=(time.perf_counter() - start) * 1000.0,
        )

        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(
                f"[PIPELINE] cycle={self.cycle_index} events={len(events)} "
                f"occluded_px={int(occlusion.sum())} time={result.processing_time_ms:.1f}ms"
            )
        self.cycle_index += 1
        return result

    def recalibrate(self) -> None:
        """Recapture the reference on the next cycle and clear all key state."""
        self.background.recalibrate()
        self.layout.reset_state()
        self.logger.info("[PIPELINE] Recalibration requested")
