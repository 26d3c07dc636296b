"""Staged progress reporting.

A stage groups a sequence of named steps. Each step runs a function and is
reported as succeeded, skipped, or failed:
- returning None means the step succeeded
- returning a Skip means the work was already done
- raising means the step failed; the exception propagates to the caller
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from rich.console import Console
from rich.markup import escape

from stemcell_manager.types import Skip, StepOutcome

logger = logging.getLogger(__name__)

StepFunc = Callable[[], Skip | None]


def _format_duration(seconds: float) -> str:
    """Format seconds as HH:MM:SS."""
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


@dataclass
class StepEvent:
    """Record of one completed step.

    Attributes:
        stage: Name of the enclosing stage.
        step: Name of the step.
        outcome: How the step ended.
        message: Skip reason or failure message, if any.
        started_at: When the step started.
        duration: Wall-clock duration in seconds.
    """

    stage: str
    step: str
    outcome: StepOutcome
    message: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration: float = 0.0


class Stage:
    """A named group of reported steps."""

    def __init__(self, name: str, console: Console) -> None:
        self.name = name
        self.events: list[StepEvent] = []
        self.started = False
        self.finished = False
        self._console = console
        self._started_at: float | None = None

    def start(self) -> None:
        """Report the start of the stage."""
        self.started = True
        self._started_at = time.monotonic()
        logger.debug("Started %s", self.name)
        self._console.print(f"Started {escape(self.name)}")

    def perform_step(self, name: str, fn: StepFunc) -> StepOutcome:
        """Run one step and report its outcome.

        Args:
            name: Step name shown in the report.
            fn: Step function; returns None on success or Skip when the
                work was already done.

        Returns:
            StepOutcome.SUCCEEDED or StepOutcome.SKIPPED.

        Raises:
            Exception: Whatever fn raised, after the step is reported failed.
        """
        started_at = datetime.now(timezone.utc)
        start = time.monotonic()
        try:
            result = fn()
        except Exception as e:
            duration = time.monotonic() - start
            self.events.append(
                StepEvent(
                    stage=self.name,
                    step=name,
                    outcome=StepOutcome.FAILED,
                    message=str(e),
                    started_at=started_at,
                    duration=duration,
                )
            )
            logger.debug("%s > %s failed: %s", self.name, name, e)
            self._console.print(
                f"  {escape(name)}... [red]Failed[/red] "
                f"({_format_duration(duration)})"
            )
            raise

        duration = time.monotonic() - start
        if isinstance(result, Skip):
            outcome = StepOutcome.SKIPPED
            message: str | None = result.reason
            logger.debug("%s > %s skipped: %s", self.name, name, result.reason)
            self._console.print(
                f"  {escape(name)}... [yellow]Skipped[/yellow] "
                f"\\[{escape(result.reason)}] ({_format_duration(duration)})"
            )
        else:
            outcome = StepOutcome.SUCCEEDED
            message = None
            logger.debug("%s > %s finished", self.name, name)
            self._console.print(
                f"  {escape(name)}... [green]Finished[/green] "
                f"({_format_duration(duration)})"
            )

        self.events.append(
            StepEvent(
                stage=self.name,
                step=name,
                outcome=outcome,
                message=message,
                started_at=started_at,
                duration=duration,
            )
        )
        return outcome

    def finish(self) -> None:
        """Report the end of the stage."""
        self.finished = True
        elapsed = 0.0
        if self._started_at is not None:
            elapsed = time.monotonic() - self._started_at
        logger.debug("Finished %s", self.name)
        self._console.print(
            f"Finished {escape(self.name)} ({_format_duration(elapsed)})"
        )


class EventLogger:
    """Factory for stages that report to a rich console."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self.stages: list[Stage] = []

    def new_stage(self, name: str) -> Stage:
        """Create a new stage; call start() on it to begin reporting."""
        stage = Stage(name, self.console)
        self.stages.append(stage)
        return stage


__all__ = ["EventLogger", "Stage", "StepEvent", "StepFunc"]
