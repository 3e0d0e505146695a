"""Issue lifecycle models.

Key Models:
- IssueStatus: forward-only lifecycle (PENDING → ... → terminal)
- NewIssue / Issue: the tracked report and its stored form
- IssueFieldsUpdate: explicit optional-field update of the mutable Issue fields
- InvestigationUpdate: append-only audit entry written on every transition
- InvestigationResult: archival record of a completed investigation

Lifecycle Flow:
  PENDING → IN_PROGRESS → ANALYZING → TESTING → RESOLVED (terminal, success)
                                              → NEEDS_MAINTAINER (terminal, success)
  any non-terminal state → FAILED (terminal, failure)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from issue_investigator.models.analysis import AnalysisResult


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================
# Status & Lifecycle
# ============================================================

class IssueStatus(str, Enum):
    """
    Issue lifecycle status.

    Terminal States: RESOLVED, NEEDS_MAINTAINER (success), FAILED (failure)
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    ANALYZING = "analyzing"
    TESTING = "testing"
    RESOLVED = "resolved"
    FAILED = "failed"
    NEEDS_MAINTAINER = "needs_maintainer"

    @property
    def is_terminal(self) -> bool:
        """Check if this status is terminal"""
        return self in [IssueStatus.RESOLVED, IssueStatus.FAILED, IssueStatus.NEEDS_MAINTAINER]

    @property
    def is_success(self) -> bool:
        """Terminal states that count as a completed investigation"""
        return self in [IssueStatus.RESOLVED, IssueStatus.NEEDS_MAINTAINER]

    @property
    def is_active(self) -> bool:
        return not self.is_terminal


_VALID_TRANSITIONS: Dict[IssueStatus, List[IssueStatus]] = {
    IssueStatus.PENDING: [IssueStatus.IN_PROGRESS, IssueStatus.FAILED],
    IssueStatus.IN_PROGRESS: [IssueStatus.ANALYZING, IssueStatus.FAILED],
    IssueStatus.ANALYZING: [IssueStatus.TESTING, IssueStatus.FAILED],
    IssueStatus.TESTING: [IssueStatus.RESOLVED, IssueStatus.NEEDS_MAINTAINER, IssueStatus.FAILED],
    IssueStatus.RESOLVED: [],  # Terminal
    IssueStatus.NEEDS_MAINTAINER: [],  # Terminal
    IssueStatus.FAILED: [],  # Terminal
}


def is_valid_transition(from_status: IssueStatus, to_status: IssueStatus) -> bool:
    """
    Validate a status transition.

    Progression is forward-only; every non-terminal state may fail.
    """
    return to_status in _VALID_TRANSITIONS.get(from_status, [])


# ============================================================
# Issue
# ============================================================

class NewIssue(BaseModel):
    """Payload used to create an issue. Identity and timestamps come from the store."""

    user_id: str = Field(..., description="Reporter identity on the chat platform")
    username: str = Field(..., description="Reporter display name")
    original_query: str = Field(..., description="Raw report text", min_length=1)
    analysis: Optional[AnalysisResult] = Field(None, description="Structured analysis, filled while ANALYZING")
    status: IssueStatus = Field(IssueStatus.PENDING, description="Initial lifecycle status")
    origin_message_id: str = Field(..., description="Message that carried the report")
    origin_channel_id: str = Field(..., description="Channel the report was posted in")
    origin_timestamp: int = Field(..., description="Origin message timestamp (epoch ms)")
    repository_url: Optional[str] = None
    test_case_path: Optional[str] = None
    recreation_steps: Optional[List[str]] = None
    assigned_maintainer_id: Optional[str] = None


class Issue(NewIssue):
    """
    A tracked user-reported problem.

    Owned by the store; the pipeline changes it only through
    ``update_issue_status`` and ``update_issue_fields``.
    """

    id: int = Field(..., description="Store-generated identifier")
    archive_url: Optional[str] = Field(None, description="Uploaded results archive")
    result_summary: Optional[str] = Field(None, description="Human summary of the investigation")
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class IssueFieldsUpdate(BaseModel):
    """
    Explicit partial update of the mutable Issue fields.

    Only fields that were explicitly set are applied (``exclude_unset``), so
    passing ``archive_url=None`` clears the field while omitting it leaves it
    untouched. Status changes go through ``update_issue_status`` instead.
    """

    analysis: Optional[AnalysisResult] = None
    repository_url: Optional[str] = None
    test_case_path: Optional[str] = None
    recreation_steps: Optional[List[str]] = None
    archive_url: Optional[str] = None
    result_summary: Optional[str] = None
    assigned_maintainer_id: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly set on this update, keyed by Issue attribute name."""
        return {name: getattr(self, name) for name in self.model_fields_set}


# ============================================================
# Audit & Results
# ============================================================

class InvestigationUpdate(BaseModel):
    """
    Append-only audit entry.

    One is written for every status the pipeline enters. Never mutated or
    deleted once stored.
    """

    id: Optional[int] = Field(None, description="Store-generated identifier")
    issue_id: int = Field(..., description="Issue the entry belongs to")
    status: IssueStatus = Field(..., description="Status at time of write")
    message: str = Field(..., description="Human-readable progress message")
    details: Optional[Dict[str, Any]] = Field(None, description="Open JSON-serializable map")
    timestamp: datetime = Field(default_factory=_utcnow)

    class Config:
        frozen = True


class InvestigationResult(BaseModel):
    """Archival record of one completed investigation."""

    id: Optional[int] = Field(None, description="Store-generated identifier")
    issue_id: int
    success: bool = Field(..., description="Test process completed without infrastructure failure")
    reproduced: bool = Field(..., description="Defect observed")
    test_case_path: Optional[str] = None
    repository_url: Optional[str] = None
    archive_url: Optional[str] = None
    result_summary: str
    execution_time: int = Field(..., description="Test execution time in milliseconds", ge=0)
    maintainer_notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("result_summary")
    @classmethod
    def validate_summary(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("result_summary must not be blank")
        return v
