"""Issue Investigator

Automated triage of user-reported problems: analyze a report, plan a
reproduction, run it in an isolated working directory and either resolve
the issue or escalate it to a maintainer.
"""

__version__ = "0.1.0"

# Export shared models first (no dependencies)
from issue_investigator.models import (
    AnalysisResult, Issue, IssueStatus, InvestigationResult,
    InvestigationUpdate, ReproductionOutcome, TestPlan,
)

from issue_investigator.config import (
    InvestigatorSettings,
    get_settings,
    reset_settings,
)


# Lazy import for the pipeline, which pulls in every collaborator
def __getattr__(name):
    """Lazy import for the orchestrator and intake helpers."""
    if name in ("InvestigationOrchestrator", "ProblemReport", "open_issue"):
        from issue_investigator import core
        return getattr(core, name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    # Models
    "AnalysisResult", "Issue", "IssueStatus", "InvestigationResult",
    "InvestigationUpdate", "ReproductionOutcome", "TestPlan",
    # Pipeline (lazy loaded)
    "InvestigationOrchestrator", "ProblemReport", "open_issue",
    # Configuration
    "InvestigatorSettings",
    "get_settings",
    "reset_settings",
]
