"""Issue store contract.

The store exclusively owns Issue rows, the append-only audit trail and the
archival results. Implementations must be safe under concurrent callers
because several investigations may run at once; generated identifiers and
timestamps are echoed back in the returned models.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from issue_investigator.models import (
    InvestigationResult,
    InvestigationUpdate,
    Issue,
    IssueFieldsUpdate,
    IssueStatus,
    NewIssue,
)


class IssueStore(ABC):
    """Durable storage for issues, audit entries and results"""

    @abstractmethod
    async def create_issue(self, issue: NewIssue) -> Issue:
        """Persist a new issue and return it with id and timestamps."""

    @abstractmethod
    async def get_issue(self, issue_id: int) -> Optional[Issue]:
        """Return the issue or None."""

    @abstractmethod
    async def update_issue_status(self, issue_id: int, status: IssueStatus) -> Issue:
        """Set the status field. Raises IssueNotFoundError for unknown ids."""

    @abstractmethod
    async def update_issue_fields(self, issue_id: int, update: IssueFieldsUpdate) -> Issue:
        """Apply the explicitly-set fields of ``update``."""

    @abstractmethod
    async def append_investigation_update(
        self,
        issue_id: int,
        status: IssueStatus,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> InvestigationUpdate:
        """Append one audit entry. Does not touch the issue's status."""

    @abstractmethod
    async def list_investigation_updates(self, issue_id: int) -> List[InvestigationUpdate]:
        """Audit entries in write order."""

    @abstractmethod
    async def create_investigation_result(self, result: InvestigationResult) -> InvestigationResult:
        """Persist an archival result."""

    @abstractmethod
    async def list_investigation_results(self, issue_id: int) -> List[InvestigationResult]:
        """Results recorded for an issue."""

    @abstractmethod
    async def list_active_issues(self) -> List[Issue]:
        """Non-terminal issues ordered by creation time."""

    async def close(self):
        """Release connections. Override when the store holds any."""
        pass
