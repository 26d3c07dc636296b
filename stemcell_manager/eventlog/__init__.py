"""Staged progress reporting for long-running operations."""

from stemcell_manager.eventlog.stage import EventLogger, Stage, StepEvent
from stemcell_manager.types import Skip, StepOutcome

__all__ = ["EventLogger", "Skip", "Stage", "StepEvent", "StepOutcome"]
