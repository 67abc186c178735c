"""
Orchestrator package - periodic update cycles and balance reports.
"""

from spreadmaker.orchestrator.scheduler import (
    CycleOutcome,
    CycleResult,
    Scheduler,
    SchedulerConfig,
)

__all__ = [
    "CycleOutcome",
    "CycleResult",
    "Scheduler",
    "SchedulerConfig",
]
