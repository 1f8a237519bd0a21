"""
Reveal scheduling: progressive disclosure of a recording, one frame at a time.

Two policies share one contract:

- IndexRevealPolicy: reveals one more point per frame. Playback lasts
  exactly `total` frames, so it depends on how densely the stroke was
  sampled. Used by the 2D curve renderer.
- ArcLengthRevealPolicy: shrinks a dash-offset fraction from 1.0 (nothing
  drawn) to 0.0 (everything drawn) by a fixed step per frame. Playback is
  independent of point count. Used by the 3D ribbon.

The two durations differ for the same recording; that is per-renderer
behaviour and is left as is.

The scheduler is pull-based: the owner calls advance() once per frame and
then renders. There is no callback registration and no threading.
"""

import math
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Union

from common.recording import StrokeRecording

logger = logging.getLogger(__name__)

DEFAULT_ARC_STEP = 0.003


@dataclass
class IndexRevealState:
    """Number of points revealed so far out of total."""
    revealed_count: int = 0
    total: int = 0


@dataclass
class ArcLengthRevealState:
    """
    Dash-offset fraction of the ribbon length.

    1.0 hides the whole ribbon, 0.0 shows all of it.
    """
    revealed_fraction: float = 1.0


RevealState = Union[IndexRevealState, ArcLengthRevealState]


class RevealPolicy(ABC):
    """How one frame of reveal progress is measured."""

    name: str = "base"

    @abstractmethod
    def reset(self, recording: StrokeRecording) -> bool:
        """
        Return to the zero-revealed state for a new recording.

        Returns:
            True if the recording has anything to reveal
        """

    @abstractmethod
    def step(self) -> None:
        """Advance by one frame."""

    @property
    @abstractmethod
    def is_complete(self) -> bool:
        ...

    @property
    @abstractmethod
    def state(self) -> RevealState:
        ...

    @property
    @abstractmethod
    def estimated_frames(self) -> int:
        """Frames from reset to completion."""


class IndexRevealPolicy(RevealPolicy):
    """One point per frame."""

    name = "index"

    def __init__(self):
        self._state = IndexRevealState()

    def reset(self, recording: StrokeRecording) -> bool:
        self._state = IndexRevealState(revealed_count=0, total=recording.n_points)
        return self._state.total > 0

    def step(self) -> None:
        if self._state.revealed_count < self._state.total:
            self._state.revealed_count += 1

    @property
    def is_complete(self) -> bool:
        return self._state.revealed_count == self._state.total

    @property
    def state(self) -> IndexRevealState:
        return self._state

    @property
    def revealed_count(self) -> int:
        return self._state.revealed_count

    @property
    def estimated_frames(self) -> int:
        return self._state.total


class ArcLengthRevealPolicy(RevealPolicy):
    """Fixed decrement of the dash-offset fraction per frame."""

    name = "arc_length"

    def __init__(self, step: float = DEFAULT_ARC_STEP):
        if not step > 0:
            raise ValueError(f"step must be > 0, got {step}")
        self.step_size = float(step)
        self._state = ArcLengthRevealState(revealed_fraction=1.0)

    def reset(self, recording: StrokeRecording) -> bool:
        self._state = ArcLengthRevealState(revealed_fraction=1.0)
        return len(recording.valid_points) >= 2

    def step(self) -> None:
        value = self._state.revealed_fraction - self.step_size
        # Snap float residue so 1/step frames finish exactly
        if value < 1e-9:
            value = 0.0
        self._state.revealed_fraction = value

    @property
    def is_complete(self) -> bool:
        return self._state.revealed_fraction <= 0.0

    @property
    def state(self) -> ArcLengthRevealState:
        return self._state

    @property
    def revealed_fraction(self) -> float:
        return self._state.revealed_fraction

    @property
    def estimated_frames(self) -> int:
        return int(math.ceil(1.0 / self.step_size))


class RevealScheduler:
    """
    Drives one RevealPolicy for one display surface.

    At most one reveal task exists at a time. start() cancels the previous
    task before touching policy state, so stale and fresh reveals never
    interleave.
    """

    def __init__(self, policy: RevealPolicy):
        self.policy = policy
        self._active = False
        self._recording: Optional[StrokeRecording] = None
        self.frames_advanced = 0

    @property
    def is_active(self) -> bool:
        """True while a reveal task is pending (more frames to advance)."""
        return self._active

    @property
    def recording(self) -> Optional[StrokeRecording]:
        return self._recording

    @property
    def state(self) -> RevealState:
        return self.policy.state

    def start(self, recording: StrokeRecording) -> bool:
        """
        Begin revealing a recording from the zero-revealed state.

        Returns:
            True if a reveal task was scheduled (False for empty input)
        """
        self.cancel()
        self._recording = recording
        self.frames_advanced = 0

        has_content = self.policy.reset(recording)
        self._active = has_content and not self.policy.is_complete

        if self._active:
            logger.debug(
                f"Started {self.policy.name} reveal "
                f"(~{self.policy.estimated_frames} frames)"
            )
        else:
            logger.debug(f"Nothing to reveal for {self.policy.name} policy")
        return self._active

    def cancel(self) -> None:
        """Drop the pending reveal task; further advance() calls are no-ops."""
        if self._active:
            logger.debug(
                f"Cancelled {self.policy.name} reveal after {self.frames_advanced} frames"
            )
        self._active = False

    def advance(self) -> bool:
        """
        Advance one frame.

        Returns:
            True if state changed (a new frame should be rendered)
        """
        if not self._active:
            return False

        self.policy.step()
        self.frames_advanced += 1

        if self.policy.is_complete:
            self._active = False
            logger.debug(f"{self.policy.name} reveal complete after {self.frames_advanced} frames")
        return True

    def is_complete(self) -> bool:
        return self.policy.is_complete

    def run_to_completion(self, max_frames: Optional[int] = None) -> int:
        """
        Advance until complete or cancelled.

        Returns:
            Number of frames advanced
        """
        n = 0
        while self._active:
            if max_frames is not None and n >= max_frames:
                break
            self.advance()
            n += 1
        return n
