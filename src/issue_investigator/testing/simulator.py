"""
Issue simulator: replay the real pipeline against example reports.

Each example file becomes a ``ProblemReport``; the issue is opened in the
store exactly as the chat intake would open it, and the unmodified
``InvestigationOrchestrator`` runs with a ``SimulatedReporter`` that
publishes every reply and edit on an ``EventBus``. The simulator records the
ordered event trace, elapsed time, final status and analysis per example.

Example formats:
- ``*.json``: object with ``description`` and optional ``userId``,
  ``username``, ``channelId``
- ``*.md``: the whole file is the description
"""

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from issue_investigator.core import InvestigationOrchestrator, ProblemReport, open_issue
from issue_investigator.exceptions import ExampleLoadError, IssueNotFoundError
from issue_investigator.infrastructure.persistence import IssueStore
from issue_investigator.models import AnalysisResult, IssueStatus
from issue_investigator.utils import format_error

from .events import EventBus, SimulationEvent
from .reporter import SimulatedReporter

logger = logging.getLogger(__name__)

EXAMPLE_SUFFIXES = (".json", ".md")
INITIAL_REPLY = "Beginning issue investigation..."


class ExampleReport(BaseModel):
    description: str = Field(..., min_length=1)
    user_id: str = Field("test-user", alias="userId")
    username: str = "TestUser"
    channel_id: str = Field("test-channel", alias="channelId")

    class Config:
        populate_by_name = True


class SimulationResult(BaseModel):
    issue_id: int
    execution_time_ms: int
    events: List[SimulationEvent] = Field(default_factory=list)
    final_status: IssueStatus
    analysis: Optional[AnalysisResult] = None


class SimulationRecord(BaseModel):
    example: str = Field(..., description="Example file name")
    success: bool
    result: Optional[SimulationResult] = None
    error: Optional[str] = None


class IssueSimulator:
    """
    Runs examples through the orchestrator, one at a time.

    Args:
        examples_dir: Directory holding ``*.json`` / ``*.md`` examples
        orchestrator: Pipeline under test
        store: Store the orchestrator writes to (final status is re-read from it)
        bus: Event bus shared with the simulated reporters
    """

    def __init__(
        self,
        examples_dir: Union[str, Path],
        orchestrator: InvestigationOrchestrator,
        store: IssueStore,
        bus: Optional[EventBus] = None,
    ):
        self.examples_dir = Path(examples_dir).resolve()
        self.orchestrator = orchestrator
        self.store = store
        self.bus = bus or EventBus()
        self._message_ids = 0
        self.results: List[SimulationRecord] = []

    def load_examples(self) -> List[Path]:
        """Example files in name order; an unreadable directory yields none."""
        try:
            files = sorted(p for p in self.examples_dir.iterdir() if p.suffix in EXAMPLE_SUFFIXES)
        except OSError as e:
            logger.error(f"Error loading examples: {format_error(e)}")
            return []
        return [p for p in files if p.is_file()]

    def load_example(self, path: Path) -> ExampleReport:
        """
        Parse one example file.

        Raises:
            ExampleLoadError: If the file cannot be read or has no usable description
        """
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ExampleLoadError(str(path), str(e))

        if path.suffix == ".md":
            data = {"description": content}
        elif path.suffix == ".json":
            try:
                data = json.loads(content)
            except ValueError as e:
                raise ExampleLoadError(str(path), f"invalid JSON: {e}")
            if not isinstance(data, dict):
                raise ExampleLoadError(str(path), "expected a JSON object")
        else:
            raise ExampleLoadError(str(path), f"unsupported file format: {path.suffix}")

        try:
            return ExampleReport.model_validate(data)
        except ValueError as e:
            raise ExampleLoadError(str(path), str(e))

    def _next_message_id(self) -> str:
        self._message_ids += 1
        return f"msg-{self._message_ids}"

    async def simulate_issue(self, path: Path) -> SimulationResult:
        """
        Run one example through intake and the orchestrator.

        The outcome is appended to ``results`` whether or not it succeeds.

        Raises:
            Exception: Whatever prevented the simulation from completing
        """
        logger.info(f"Simulating issue from: {path}")
        try:
            result = await self._simulate(path)
        except Exception as e:
            logger.error(f"Error simulating issue from {path}: {format_error(e)}")
            self.results.append(SimulationRecord(example=path.name, success=False, error=format_error(e)))
            raise
        self.results.append(SimulationRecord(example=path.name, success=True, result=result))
        return result

    async def _simulate(self, path: Path) -> SimulationResult:
        example = self.load_example(path)
        message_id = self._next_message_id()
        issue = await open_issue(self.store, ProblemReport(
            user_id=example.user_id,
            username=example.username,
            text=example.description,
            origin_message_id=message_id,
            origin_channel_id=example.channel_id,
        ))

        events: List[SimulationEvent] = []
        listener = events.append
        self.bus.subscribe(listener)
        try:
            reporter = SimulatedReporter(self.bus, message_id)
            progress = await reporter.reply(INITIAL_REPLY)

            logger.info(f"Starting investigation for simulated issue #{issue.id}")
            started = time.monotonic()
            run = await self.orchestrator.investigate(issue, reporter, progress)
            execution_time_ms = int((time.monotonic() - started) * 1000)
        finally:
            self.bus.unsubscribe(listener)

        stored = await self.store.get_issue(issue.id)
        if stored is None:
            raise IssueNotFoundError(issue.id)

        return SimulationResult(
            issue_id=issue.id,
            execution_time_ms=execution_time_ms,
            events=events,
            final_status=stored.status,
            analysis=run.analysis,
        )

    async def run_all(self) -> List[SimulationRecord]:
        """Simulate every example. A failing example never stops the batch."""
        first = len(self.results)
        for path in self.load_examples():
            try:
                await self.simulate_issue(path)
            except Exception:
                # Already logged and recorded by simulate_issue
                continue
        return self.results[first:]

    def generate_report(self, now: Optional[datetime] = None) -> str:
        """Markdown summary of every simulation recorded so far."""
        now = now or datetime.now(timezone.utc)
        total = len(self.results)
        successful = sum(1 for r in self.results if r.success)

        lines = [
            "# Issue Simulation Report",
            "",
            f"**Date:** {now.isoformat()}",
            f"**Total Tests:** {total}",
            f"**Successful:** {successful}",
            f"**Failed:** {total - successful}",
            "",
            "## Test Results",
            "",
        ]

        for index, record in enumerate(self.results, 1):
            lines.append(f"### {index}. {record.example}")
            lines.append("")
            lines.append(f"Status: {'✅ Success' if record.success else '❌ Failed'}")
            lines.append("")
            if record.success and record.result is not None:
                result = record.result
                lines.append(f"Final Status: {result.final_status.value}")
                lines.append("")
                lines.append(f"Execution Time: {result.execution_time_ms}ms")
                lines.append("")
                analysis = result.analysis.to_prompt_json() if result.analysis else None
                lines.append("Analysis:")
                lines.append("```json")
                lines.append(json.dumps(analysis, indent=2))
                lines.append("```")
                lines.append("")
            else:
                lines.append(f"Error: {record.error}")
                lines.append("")

        return "\n".join(lines)
