"""
Shared data models for the investigation pipeline.

Pydantic models for issues, their audit trail, and the structured outputs of
each pipeline stage.
"""

from issue_investigator.models.analysis import (
    AnalysisResult,
    Complexity,
    GeneratedTestCode,
    ProblemCategory,
    ReproductionOutcome,
    TestFileDescriptor,
    TestPlan,
)
from issue_investigator.models.issue import (
    InvestigationResult,
    InvestigationUpdate,
    Issue,
    IssueFieldsUpdate,
    IssueStatus,
    NewIssue,
    is_valid_transition,
)

__all__ = [
    # Analysis
    "AnalysisResult", "Complexity", "ProblemCategory",
    # Planning & reproduction
    "TestPlan", "TestFileDescriptor", "GeneratedTestCode", "ReproductionOutcome",
    # Issue lifecycle
    "Issue", "NewIssue", "IssueFieldsUpdate", "IssueStatus", "is_valid_transition",
    # Audit & results
    "InvestigationUpdate", "InvestigationResult",
]
