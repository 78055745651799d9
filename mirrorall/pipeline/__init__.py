"""Mirroring pipeline: scheduling and run coordination."""

from .scheduler import MirrorScheduler, MirrorTask
from .coordinator import RunCoordinator, estimate_size_mb

__all__ = ["MirrorScheduler", "MirrorTask", "RunCoordinator", "estimate_size_mb"]
