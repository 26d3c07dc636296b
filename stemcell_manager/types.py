"""Shared type definitions for stemcell_manager.

This module contains dataclasses and enums shared across subpackages
to avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum


class StepOutcome(str, Enum):
    """Outcome of a single reported step."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class StemcellIdentity:
    """Name and version that uniquely identify a stemcell."""

    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name}/{self.version}"


@dataclass(frozen=True)
class Skip:
    """Returned by a step function when its work is already done.

    Attributes:
        reason: Human-readable explanation shown in the step report.
    """

    reason: str


__all__ = ["Skip", "StemcellIdentity", "StepOutcome"]
