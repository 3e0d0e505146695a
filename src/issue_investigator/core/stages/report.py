"""
Report stage: summarize, archive, persist and escalate.

Order of work:
1. Model-written summary, or a templated one when the model call fails
2. ``SUMMARY.md`` plus a zip of the working directory, uploaded best-effort
3. The ``InvestigationResult`` is persisted (with or without archive URL)
4. Terminal status is derived: reproduced means NEEDS_MAINTAINER, anything
   else means RESOLVED ("could not confirm" counts as resolved)
5. Escalation to the maintainer when reproduced and one is configured

The stage computes the terminal status; the orchestrator writes it.
"""

import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from issue_investigator.core import messages
from issue_investigator.core.reporter import BestEffortReporter
from issue_investigator.infrastructure.llm import LanguageModel
from issue_investigator.infrastructure.persistence import IssueStore
from issue_investigator.infrastructure.storage import BlobStore, build_directory_archive, issue_archive_key
from issue_investigator.models import InvestigationResult, Issue, IssueStatus, ReproductionOutcome
from issue_investigator.utils import format_error

from .prompts import SUMMARY_SYSTEM_PROMPT, summary_prompt

logger = logging.getLogger(__name__)

SUMMARY_FILE = "SUMMARY.md"
ARCHIVE_CONTENT_TYPE = "application/zip"


class ReportOutcome(BaseModel):
    """What the report stage produced for one issue."""

    summary: str
    archive_url: Optional[str] = None
    result: InvestigationResult
    final_status: IssueStatus
    escalated: bool = Field(False, description="Maintainer was notified of a reproduction")


def terminal_status(outcome: ReproductionOutcome) -> IssueStatus:
    return IssueStatus.NEEDS_MAINTAINER if outcome.reproduced else IssueStatus.RESOLVED


def template_summary(outcome: ReproductionOutcome) -> str:
    """Deterministic summary built from the structured outcome."""
    status = "Successfully reproduced" if outcome.reproduced else "Could not reproduce"
    next_steps = (
        "A maintainer should review the test case and investigate the root cause."
        if outcome.reproduced
        else "Additional information may be needed to reproduce this issue."
    )
    parts = [
        "## Test Summary for Issue",
        "",
        f"**Reproduction Status**: {status}",
        "",
        f"**Execution Time**: {outcome.execution_time_ms}ms",
        "",
        "**Observations**:",
        outcome.output or "No output recorded",
        "",
    ]
    if outcome.error_output:
        parts += ["**Errors**:", outcome.error_output, ""]
    parts.append(f"**Next Steps**: {next_steps}")
    return "\n".join(parts)


class ReportStage:
    def __init__(
        self,
        llm: LanguageModel,
        store: IssueStore,
        blob_store: Optional[BlobStore] = None,
        maintainer_id: Optional[str] = None,
    ):
        self.llm = llm
        self.store = store
        self.blob_store = blob_store
        self.maintainer_id = maintainer_id

    async def summarize(self, report: str, outcome: ReproductionOutcome) -> str:
        try:
            summary = await self.llm.complete(summary_prompt(report, outcome), SUMMARY_SYSTEM_PROMPT)
        except Exception as e:
            logger.error(f"Failed to generate test summary: {format_error(e)}")
            return template_summary(outcome)
        if not summary or not summary.strip():
            logger.warning("Model returned an empty summary, using template")
            return template_summary(outcome)
        return summary.strip()

    async def upload_archive(self, issue_id: int, workdir: Path, summary: str) -> Optional[str]:
        """Write SUMMARY.md, zip the working directory and upload it.

        Never raises; returns None when anything goes wrong.
        """
        if self.blob_store is None:
            logger.info(f"No blob store configured, skipping archive for issue #{issue_id}")
            return None
        try:
            workdir.mkdir(parents=True, exist_ok=True)
            (workdir / SUMMARY_FILE).write_text(summary, encoding="utf-8")
            archive = build_directory_archive(workdir)
            url = await self.blob_store.upload(issue_archive_key(issue_id), archive, ARCHIVE_CONTENT_TYPE)
            logger.info(f"Uploaded results archive for issue #{issue_id}: {url}")
            return url
        except Exception as e:
            logger.error(f"Failed to upload test results for issue #{issue_id}: {format_error(e)}")
            return None

    async def run(
        self,
        issue: Issue,
        outcome: ReproductionOutcome,
        workdir: Path,
        reporter: Optional[BestEffortReporter] = None,
    ) -> ReportOutcome:
        summary = await self.summarize(issue.original_query, outcome)
        archive_url = await self.upload_archive(issue.id, workdir, summary)

        result = await self.store.create_investigation_result(InvestigationResult(
            issue_id=issue.id,
            success=outcome.success,
            reproduced=outcome.reproduced,
            test_case_path=outcome.main_test_file,
            repository_url=outcome.repository_url,
            archive_url=archive_url,
            result_summary=summary,
            execution_time=outcome.execution_time_ms,
        ))

        final_status = terminal_status(outcome)
        escalated = False
        if outcome.reproduced and self.maintainer_id and reporter is not None:
            await reporter.reply(messages.maintainer_escalation(self.maintainer_id, archive_url))
            escalated = True
            logger.info(f"Escalated issue #{issue.id} to maintainer {self.maintainer_id}")

        return ReportOutcome(
            summary=summary,
            archive_url=archive_url,
            result=result,
            final_status=final_status,
            escalated=escalated,
        )
