"""Redis-backed issue store.

Layout (all values are JSON documents):
- ``{prefix}:issue:next_id`` / ``update:next_id`` / ``result:next_id``: INCR counters
- ``{prefix}:issue:{id}``: the Issue document
- ``{prefix}:issue:{id}:updates``: list of audit entries (RPUSH only)
- ``{prefix}:issue:{id}:results``: list of InvestigationResult documents
- ``{prefix}:issues:active``: set of non-terminal issue ids

Each run exclusively owns its issue's keys, so read-modify-write on the issue
document needs no locking; audit appends and id generation are single atomic
commands.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from redis.asyncio import Redis

from issue_investigator.exceptions import IssueNotFoundError
from issue_investigator.models import (
    InvestigationResult,
    InvestigationUpdate,
    Issue,
    IssueFieldsUpdate,
    IssueStatus,
    NewIssue,
)

from .base import IssueStore
from .memory import ensure_serializable

logger = logging.getLogger(__name__)


class RedisIssueStore(IssueStore):
    def __init__(self, client: Redis, prefix: str = "investigator"):
        self.client = client
        self.prefix = prefix

    def _key(self, *parts: Any) -> str:
        return ":".join([self.prefix, *[str(p) for p in parts]])

    async def _save_issue(self, issue: Issue):
        await self.client.set(self._key("issue", issue.id), issue.model_dump_json())
        if issue.status.is_active:
            await self.client.sadd(self._key("issues", "active"), issue.id)
        else:
            await self.client.srem(self._key("issues", "active"), issue.id)

    async def _require(self, issue_id: int) -> Issue:
        issue = await self.get_issue(issue_id)
        if issue is None:
            raise IssueNotFoundError(issue_id)
        return issue

    async def create_issue(self, issue: NewIssue) -> Issue:
        issue_id = await self.client.incr(self._key("issue", "next_id"))
        now = datetime.now(timezone.utc)
        created = Issue(**issue.model_dump(), id=int(issue_id), created_at=now, updated_at=now)
        await self._save_issue(created)
        logger.info(f"Created issue #{created.id} in Redis")
        return created

    async def get_issue(self, issue_id: int) -> Optional[Issue]:
        raw = await self.client.get(self._key("issue", issue_id))
        if raw is None:
            return None
        return Issue.model_validate_json(raw)

    async def update_issue_status(self, issue_id: int, status: IssueStatus) -> Issue:
        issue = await self._require(issue_id)
        updated = issue.model_copy(update={"status": status, "updated_at": datetime.now(timezone.utc)})
        await self._save_issue(updated)
        return updated

    async def update_issue_fields(self, issue_id: int, update: IssueFieldsUpdate) -> Issue:
        issue = await self._require(issue_id)
        changes = update.changes()
        changes["updated_at"] = datetime.now(timezone.utc)
        updated = issue.model_copy(update=changes)
        await self._save_issue(updated)
        return updated

    async def append_investigation_update(
        self,
        issue_id: int,
        status: IssueStatus,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> InvestigationUpdate:
        await self._require(issue_id)
        update_id = await self.client.incr(self._key("update", "next_id"))
        entry = InvestigationUpdate(
            id=int(update_id),
            issue_id=issue_id,
            status=status,
            message=message,
            details=ensure_serializable(details),
        )
        await self.client.rpush(self._key("issue", issue_id, "updates"), entry.model_dump_json())
        return entry

    async def list_investigation_updates(self, issue_id: int) -> List[InvestigationUpdate]:
        raw_entries = await self.client.lrange(self._key("issue", issue_id, "updates"), 0, -1)
        return [InvestigationUpdate.model_validate_json(raw) for raw in raw_entries]

    async def create_investigation_result(self, result: InvestigationResult) -> InvestigationResult:
        await self._require(result.issue_id)
        result_id = await self.client.incr(self._key("result", "next_id"))
        stored = result.model_copy(update={
            "id": int(result_id),
            "created_at": datetime.now(timezone.utc),
        })
        await self.client.rpush(self._key("issue", result.issue_id, "results"), stored.model_dump_json())
        return stored

    async def list_investigation_results(self, issue_id: int) -> List[InvestigationResult]:
        raw_entries = await self.client.lrange(self._key("issue", issue_id, "results"), 0, -1)
        return [InvestigationResult.model_validate_json(raw) for raw in raw_entries]

    async def list_active_issues(self) -> List[Issue]:
        ids = await self.client.smembers(self._key("issues", "active"))
        issues = []
        for issue_id in ids:
            issue = await self.get_issue(int(issue_id))
            if issue is not None and issue.status.is_active:
                issues.append(issue)
        return sorted(issues, key=lambda i: i.created_at)

    async def close(self):
        await self.client.aclose()
