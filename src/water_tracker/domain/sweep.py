"""Domain models for reminder sweeps."""

from dataclasses import dataclass


@dataclass
class SweepReport:
    """Outcome counters for one sweep tick."""

    checked: int = 0
    dispatched: int = 0
    failed: int = 0
    skipped: int = 0
