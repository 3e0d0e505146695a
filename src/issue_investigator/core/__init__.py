"""Investigation pipeline core: stages, orchestrator and intake."""

from .intake import ProblemReport, open_issue
from .orchestrator import InvestigationOrchestrator, InvestigationRun
from .reporter import BestEffortReporter, MessageHandle, Reporter

__all__ = [
    "InvestigationOrchestrator",
    "InvestigationRun",
    "ProblemReport",
    "open_issue",
    "Reporter",
    "MessageHandle",
    "BestEffortReporter",
]
