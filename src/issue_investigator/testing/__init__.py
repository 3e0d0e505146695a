"""Example harness: runs the real pipeline against literal example reports."""

from .events import EventBus, SimulationEvent
from .reporter import SimulatedReporter
from .simulator import ExampleReport, IssueSimulator, SimulationRecord, SimulationResult

__all__ = [
    "EventBus",
    "SimulationEvent",
    "SimulatedReporter",
    "IssueSimulator",
    "ExampleReport",
    "SimulationRecord",
    "SimulationResult",
]
