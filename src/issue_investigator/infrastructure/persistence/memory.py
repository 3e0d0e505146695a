"""In-process issue store.

Used by the example harness and the test-suite. Every operation completes
without awaiting, so concurrent investigations on one event loop cannot
interleave inside a write.
"""

import itertools
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from issue_investigator.exceptions import IssueNotFoundError, StoreError
from issue_investigator.models import (
    InvestigationResult,
    InvestigationUpdate,
    Issue,
    IssueFieldsUpdate,
    IssueStatus,
    NewIssue,
)

from .base import IssueStore

logger = logging.getLogger(__name__)


def ensure_serializable(details: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Open detail maps must survive a JSON round-trip."""
    if details is None:
        return None
    try:
        return json.loads(json.dumps(details, default=str))
    except (TypeError, ValueError) as e:
        raise StoreError(f"Investigation details are not serializable: {e}")


class InMemoryIssueStore(IssueStore):
    def __init__(self):
        self._issues: Dict[int, Issue] = {}
        self._updates: Dict[int, List[InvestigationUpdate]] = {}
        self._results: Dict[int, List[InvestigationResult]] = {}
        self._issue_ids = itertools.count(1)
        self._update_ids = itertools.count(1)
        self._result_ids = itertools.count(1)

    def _require(self, issue_id: int) -> Issue:
        issue = self._issues.get(issue_id)
        if issue is None:
            raise IssueNotFoundError(issue_id)
        return issue

    async def create_issue(self, issue: NewIssue) -> Issue:
        now = datetime.now(timezone.utc)
        created = Issue(
            **issue.model_dump(),
            id=next(self._issue_ids),
            created_at=now,
            updated_at=now,
        )
        self._issues[created.id] = created
        logger.debug(f"Created issue #{created.id}")
        return created.model_copy(deep=True)

    async def get_issue(self, issue_id: int) -> Optional[Issue]:
        issue = self._issues.get(issue_id)
        return issue.model_copy(deep=True) if issue else None

    async def update_issue_status(self, issue_id: int, status: IssueStatus) -> Issue:
        issue = self._require(issue_id)
        updated = issue.model_copy(update={"status": status, "updated_at": datetime.now(timezone.utc)})
        self._issues[issue_id] = updated
        return updated.model_copy(deep=True)

    async def update_issue_fields(self, issue_id: int, update: IssueFieldsUpdate) -> Issue:
        issue = self._require(issue_id)
        changes = update.changes()
        changes["updated_at"] = datetime.now(timezone.utc)
        updated = issue.model_copy(update=changes)
        self._issues[issue_id] = updated
        return updated.model_copy(deep=True)

    async def append_investigation_update(
        self,
        issue_id: int,
        status: IssueStatus,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> InvestigationUpdate:
        self._require(issue_id)
        entry = InvestigationUpdate(
            id=next(self._update_ids),
            issue_id=issue_id,
            status=status,
            message=message,
            details=ensure_serializable(details),
        )
        self._updates.setdefault(issue_id, []).append(entry)
        return entry

    async def list_investigation_updates(self, issue_id: int) -> List[InvestigationUpdate]:
        return list(self._updates.get(issue_id, []))

    async def create_investigation_result(self, result: InvestigationResult) -> InvestigationResult:
        self._require(result.issue_id)
        stored = result.model_copy(update={
            "id": next(self._result_ids),
            "created_at": datetime.now(timezone.utc),
        })
        self._results.setdefault(result.issue_id, []).append(stored)
        return stored.model_copy(deep=True)

    async def list_investigation_results(self, issue_id: int) -> List[InvestigationResult]:
        return [r.model_copy(deep=True) for r in self._results.get(issue_id, [])]

    async def list_active_issues(self) -> List[Issue]:
        active = [i for i in self._issues.values() if i.status.is_active]
        return [i.model_copy(deep=True) for i in sorted(active, key=lambda i: i.created_at)]
