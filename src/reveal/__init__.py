"""Reveal scheduling: index-based and arc-length-based progressive disclosure."""

from .scheduler import (
    RevealPolicy,
    IndexRevealPolicy,
    ArcLengthRevealPolicy,
    RevealScheduler,
    IndexRevealState,
    ArcLengthRevealState,
    DEFAULT_ARC_STEP,
)

__all__ = [
    "RevealPolicy",
    "IndexRevealPolicy",
    "ArcLengthRevealPolicy",
    "RevealScheduler",
    "IndexRevealState",
    "ArcLengthRevealState",
    "DEFAULT_ARC_STEP",
]
