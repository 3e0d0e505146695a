"""
Investigation orchestrator.

Drives one issue through the pipeline and owns every status change:

    PENDING → IN_PROGRESS → ANALYZING → TESTING → RESOLVED | NEEDS_MAINTAINER
    any non-terminal state → FAILED on an uncaught stage exception

Each transition is two store writes in sequence: the audit entry first, then
the issue's status field. They are not atomic with each other; the audit
trail is complete even if the status write is lost.

On failure a single FAILED entry with the formatted error is written, the
reporter and (when configured) the maintainer are notified, and the run
stops. There is no retry and no rollback: a partial working directory or
partial store rows are left as they are.

Stages for one issue run strictly in sequence. Runs for different issues
share nothing but the store and the blob store, so ``investigate`` may be
awaited concurrently for different issues.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from issue_investigator.config.settings import InvestigatorSettings
from issue_investigator.exceptions import InvalidTransitionError
from issue_investigator.infrastructure.llm import LanguageModel
from issue_investigator.infrastructure.persistence import IssueStore
from issue_investigator.infrastructure.process_runner import AsyncioProcessRunner, ProcessRunner
from issue_investigator.infrastructure.storage import BlobStore
from issue_investigator.models import (
    AnalysisResult,
    Issue,
    IssueFieldsUpdate,
    IssueStatus,
    ReproductionOutcome,
    TestPlan,
    is_valid_transition,
)
from issue_investigator.utils import format_error

from . import messages
from .reporter import BestEffortReporter, MessageHandle, Reporter
from .stages import (
    AnalysisStage,
    FollowUpStage,
    PlanStage,
    ReportOutcome,
    ReportStage,
    ReproductionStage,
    format_questions,
)

logger = logging.getLogger(__name__)


class InvestigationRun(BaseModel):
    """In-memory record of one orchestrated run, returned to the caller."""

    issue_id: int
    final_status: IssueStatus
    analysis: Optional[AnalysisResult] = None
    follow_up_questions: List[str] = Field(default_factory=list)
    plan: Optional[TestPlan] = None
    outcome: Optional[ReproductionOutcome] = None
    report: Optional[ReportOutcome] = None
    error: Optional[str] = Field(None, description="Formatted error when the run failed")

    @property
    def failed(self) -> bool:
        return self.final_status == IssueStatus.FAILED


class InvestigationOrchestrator:
    """
    Sequences the pipeline stages for one issue at a time.

    Args:
        store: Issue store; every audit entry and status change goes through it
        analysis: Report to structured analysis
        follow_up: Informational follow-up questions
        plan: Analysis to test plan
        reproduction: Test artifact build and execution
        report: Summary, archive and result record
        maintainer_id: Chat identity notified on escalation or failure
    """

    def __init__(
        self,
        store: IssueStore,
        analysis: AnalysisStage,
        follow_up: FollowUpStage,
        plan: PlanStage,
        reproduction: ReproductionStage,
        report: ReportStage,
        maintainer_id: Optional[str] = None,
    ):
        self.store = store
        self.analysis = analysis
        self.follow_up = follow_up
        self.plan = plan
        self.reproduction = reproduction
        self.report = report
        self.maintainer_id = maintainer_id

    @classmethod
    def from_settings(
        cls,
        settings: InvestigatorSettings,
        llm: LanguageModel,
        store: IssueStore,
        runner: Optional[ProcessRunner] = None,
        blob_store: Optional[BlobStore] = None,
    ) -> "InvestigationOrchestrator":
        """Wire every stage from settings and shared collaborators."""
        return cls(
            store=store,
            analysis=AnalysisStage(llm),
            follow_up=FollowUpStage(llm),
            plan=PlanStage(llm),
            reproduction=ReproductionStage(
                llm,
                runner or AsyncioProcessRunner(),
                temp_dir=settings.temp_dir,
                timeout_seconds=settings.test_timeout_seconds,
                clone_timeout_seconds=settings.clone_timeout_seconds,
                project_url=settings.open_source_project_url,
                test_command=settings.test_command,
            ),
            report=ReportStage(llm, store, blob_store, maintainer_id=settings.maintainer_id),
            maintainer_id=settings.maintainer_id,
        )

    async def _transition(
        self,
        issue_id: int,
        current: IssueStatus,
        target: IssueStatus,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> IssueStatus:
        if not is_valid_transition(current, target):
            raise InvalidTransitionError(current, target)
        await self.store.append_investigation_update(issue_id, target, message, details)
        await self.store.update_issue_status(issue_id, target)
        logger.info(f"Issue #{issue_id}: {current.value} -> {target.value}")
        return target

    async def investigate(
        self,
        issue: Issue,
        reporter: Reporter,
        progress: Optional[MessageHandle] = None,
    ) -> InvestigationRun:
        """
        Run the whole pipeline for ``issue``.

        Never raises for stage failures; they end the run in FAILED and are
        reported in the returned ``InvestigationRun``.

        Args:
            issue: Stored issue, normally in PENDING
            reporter: Reply/edit channel back to the person who reported it
            progress: Progress message to keep editing (a reply is sent when None)

        Returns:
            Record of what the run produced
        """
        logger.info(f"Starting investigation for issue #{issue.id}")
        notifier = BestEffortReporter(reporter)
        run = InvestigationRun(issue_id=issue.id, final_status=issue.status)
        status = issue.status

        try:
            status = await self._transition(issue.id, status, IssueStatus.IN_PROGRESS, "Investigation started")
            workdir = self.reproduction.prepare_working_dir(issue.id)

            progress = await notifier.edit(progress, messages.ANALYZING)
            status = await self._transition(
                issue.id, status, IssueStatus.ANALYZING,
                "Starting to analyze the issue",
                {"workingDir": str(workdir)},
            )

            run.analysis = await self.analysis.run(issue.original_query)
            issue = await self.store.update_issue_fields(issue.id, IssueFieldsUpdate(
                analysis=run.analysis,
                recreation_steps=run.analysis.reproducibility_steps,
            ))

            run.follow_up_questions = await self.follow_up.run(issue.original_query, run.analysis)
            if run.follow_up_questions:
                progress = await notifier.edit(
                    progress, messages.follow_up_questions(format_questions(run.follow_up_questions))
                )

            run.plan = await self.plan.run(issue.original_query, run.analysis)
            status = await self._transition(
                issue.id, status, IssueStatus.TESTING,
                "Created test plan and starting test setup",
                {"testPlan": run.plan.model_dump(mode="json", by_alias=True)},
            )
            progress = await notifier.edit(progress, messages.TESTING)

            run.outcome = await self.reproduction.run(issue.id, issue.original_query, run.analysis, run.plan)
            run.report = await self.report.run(issue, run.outcome, workdir, notifier)

            await self.store.update_issue_fields(issue.id, self._result_fields(run.outcome, run.report))
            status = await self._transition(
                issue.id, status, run.report.final_status,
                self._final_message(run.report),
                {
                    "success": run.outcome.success,
                    "reproduced": run.outcome.reproduced,
                    "exitCode": run.outcome.exit_code,
                    "executionTime": run.outcome.execution_time_ms,
                    "timedOut": run.outcome.timed_out,
                    "archiveUrl": run.report.archive_url,
                    "resultId": run.report.result.id,
                },
            )
            run.final_status = status

            if run.outcome.reproduced:
                await notifier.edit(progress, messages.REPRODUCED)
            else:
                await notifier.edit(progress, messages.not_reproduced(run.report.summary))

            logger.info(f"Investigation for issue #{issue.id} finished: {status.value}")
            return run

        except Exception as e:
            run.error = format_error(e)
            run.final_status = await self._fail(issue.id, status, run.error)
            await notifier.edit(progress, messages.FAILED)
            if self.maintainer_id:
                await notifier.reply(messages.maintainer_failure(self.maintainer_id))
            return run

    async def _fail(self, issue_id: int, current: IssueStatus, error: str) -> IssueStatus:
        logger.error(f"Error investigating issue #{issue_id}: {error}")
        if not is_valid_transition(current, IssueStatus.FAILED):
            logger.warning(f"Issue #{issue_id} is already {current.value}, not recording failure")
            return current
        try:
            await self.store.append_investigation_update(
                issue_id, IssueStatus.FAILED, f"Investigation failed: {error}", {"error": error}
            )
            await self.store.update_issue_status(issue_id, IssueStatus.FAILED)
        except Exception as e:
            logger.error(f"Failed to record failure of issue #{issue_id}: {format_error(e)}")
        return IssueStatus.FAILED

    def _result_fields(self, outcome: ReproductionOutcome, report: ReportOutcome) -> IssueFieldsUpdate:
        fields: Dict[str, Any] = {
            "result_summary": report.summary,
            "archive_url": report.archive_url,
            "repository_url": outcome.repository_url,
            "test_case_path": outcome.main_test_file,
        }
        if report.final_status == IssueStatus.NEEDS_MAINTAINER and self.maintainer_id:
            fields["assigned_maintainer_id"] = self.maintainer_id
        return IssueFieldsUpdate(**fields)

    @staticmethod
    def _final_message(report: ReportOutcome) -> str:
        if report.final_status == IssueStatus.NEEDS_MAINTAINER:
            return "Issue reproduced, maintainer attention needed"
        return "Investigation complete, issue could not be reproduced"
