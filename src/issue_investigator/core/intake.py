"""Intake: turn an incoming problem report into a PENDING issue."""

import logging
import time

from pydantic import BaseModel, Field

from issue_investigator.infrastructure.persistence import IssueStore
from issue_investigator.models import Issue, IssueStatus, NewIssue

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class ProblemReport(BaseModel):
    """A report as received from the chat platform."""

    user_id: str
    username: str
    text: str = Field(..., min_length=1, description="Raw report text")
    origin_message_id: str
    origin_channel_id: str
    origin_timestamp: int = Field(default_factory=_now_ms, description="Epoch milliseconds")


async def open_issue(store: IssueStore, report: ProblemReport) -> Issue:
    """Create the issue for ``report``. Analysis happens later, inside the pipeline."""
    issue = await store.create_issue(NewIssue(
        user_id=report.user_id,
        username=report.username,
        original_query=report.text,
        status=IssueStatus.PENDING,
        origin_message_id=report.origin_message_id,
        origin_channel_id=report.origin_channel_id,
        origin_timestamp=report.origin_timestamp,
    ))
    logger.info(f"Opened issue #{issue.id} for {report.username}")
    return issue
