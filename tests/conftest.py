"""Shared fakes for the investigation pipeline tests.

Nothing here touches the network or spawns processes: the language model,
process runner and reporter are all scripted.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import pytest

from issue_investigator.core import InvestigationOrchestrator, MessageHandle, Reporter
from issue_investigator.core.stages import (
    AnalysisStage,
    FollowUpStage,
    PlanStage,
    ReportStage,
    ReproductionStage,
)
from issue_investigator.core.stages import prompts
from issue_investigator.infrastructure.llm import LanguageModel
from issue_investigator.infrastructure.persistence import InMemoryIssueStore
from issue_investigator.infrastructure.process_runner import ProcessRunner, RunningProcess
from issue_investigator.infrastructure.storage import InMemoryBlobStore
from issue_investigator.models import NewIssue

VALID_ANALYSIS = {
    "problemCategory": "bug",
    "projectComponent": "database connection pool",
    "estimatedComplexity": "high",
    "requiredTools": ["postgres", "pytest"],
    "potentialSolutions": ["raise the pool size", "release connections on error"],
    "reproducibilitySteps": ["start the app", "send 50 concurrent requests"],
}

VALID_PLAN = {
    "testFiles": [{"name": "issue_test.py", "description": "pool exhaustion"}],
    "environmentSetup": ["start postgres"],
    "reproductionSteps": ["open 50 connections"],
    "verificationCriteria": ["TimeoutError is raised"],
    "requiredTools": ["postgres"],
    "testApproach": "exhaust the pool",
}

VALID_CODE = {
    "mainTest": "import sys\nprint('reproducing')\nsys.exit(0)\n",
    "setup": "def helper():\n    return 1\n",
}

STAGE_BY_SYSTEM_PROMPT = {
    prompts.ANALYSIS_SYSTEM_PROMPT: "analysis",
    prompts.FOLLOW_UP_SYSTEM_PROMPT: "follow_up",
    prompts.PLAN_SYSTEM_PROMPT: "plan",
    prompts.REPRODUCTION_CODE_SYSTEM_PROMPT: "code",
    prompts.SUMMARY_SYSTEM_PROMPT: "summary",
}

Answer = Union[str, Exception]


def default_answers() -> Dict[str, Answer]:
    return {
        "analysis": json.dumps(VALID_ANALYSIS),
        "follow_up": json.dumps(["Which database version?", "How many workers?"]),
        "plan": json.dumps(VALID_PLAN),
        "code": json.dumps(VALID_CODE),
        "summary": "The pool was exhausted after 50 requests.",
    }


class ScriptedLanguageModel(LanguageModel):
    """Answers each stage from a fixed table keyed by stage name.

    A value that is an exception is raised instead of returned.
    """

    def __init__(self, answers: Optional[Dict[str, Answer]] = None):
        self.answers = default_answers()
        self.answers.update(answers or {})
        self.calls: List[Dict[str, str]] = []

    async def complete(self, prompt: str, system_prompt: str) -> str:
        stage = STAGE_BY_SYSTEM_PROMPT.get(system_prompt, "unknown")
        self.calls.append({"stage": stage, "prompt": prompt})
        answer = self.answers.get(stage, "")
        if isinstance(answer, Exception):
            raise answer
        return answer

    def stages_called(self) -> List[str]:
        return [c["stage"] for c in self.calls]


class FakeProcess(RunningProcess):
    """Exits with ``exit_code``, or never exits on its own when it is None."""

    def __init__(self, exit_code: Optional[int], stdout: str = "", stderr: str = ""):
        super().__init__()
        self.exit_code = exit_code
        self.killed = False
        self.released = False
        self._stdout.append(stdout)
        self._stderr.append(stderr)
        self._exited = asyncio.Event()
        if exit_code is not None:
            self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.exit_code

    def kill(self):
        self.killed = True
        if not self._exited.is_set():
            self.exit_code = -9
            self._exited.set()

    async def release(self, grace: float = 1.0):
        self.released = True


class FakeProcessRunner(ProcessRunner):
    """Scripted runner. ``git`` commands use ``clone_exit_code``."""

    def __init__(
        self,
        exit_code: Optional[int] = 1,
        stdout: str = "running test\n",
        stderr: str = "",
        clone_exit_code: Optional[int] = 0,
        clone_stderr: str = "",
    ):
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.clone_exit_code = clone_exit_code
        self.clone_stderr = clone_stderr
        self.spawned: List[Dict[str, Any]] = []
        self.processes: List[FakeProcess] = []

    async def spawn(
        self,
        args: Sequence[str],
        cwd: Optional[Union[str, Path]] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> RunningProcess:
        self.spawned.append({"args": list(args), "cwd": cwd, "env": dict(env) if env else None})
        if args[0] == "git":
            process = FakeProcess(self.clone_exit_code, stderr=self.clone_stderr)
        else:
            process = FakeProcess(self.exit_code, stdout=self.stdout, stderr=self.stderr)
        self.processes.append(process)
        return process


class RecordingReporter(Reporter):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.replies: List[str] = []
        self.edits: List[str] = []
        self._next_id = 0

    async def reply(self, content: str) -> MessageHandle:
        if self.fail:
            raise ConnectionError("chat transport down")
        self.replies.append(content)
        self._next_id += 1
        return MessageHandle(id=f"reply-{self._next_id}", content=content)

    async def edit(self, handle: MessageHandle, content: str) -> MessageHandle:
        if self.fail:
            raise ConnectionError("chat transport down")
        self.edits.append(content)
        return handle.model_copy(update={"content": content})


def make_new_issue(text: str = "The app hangs when 50 users log in at once") -> NewIssue:
    return NewIssue(
        user_id="user-1",
        username="alice",
        original_query=text,
        origin_message_id="msg-1",
        origin_channel_id="chan-1",
        origin_timestamp=1700000000000,
    )


def build_orchestrator(
    tmp_path: Path,
    store: InMemoryIssueStore,
    llm: LanguageModel,
    runner: ProcessRunner,
    blob_store: Optional[InMemoryBlobStore] = None,
    maintainer_id: Optional[str] = None,
    project_url: Optional[str] = None,
    timeout_seconds: float = 5.0,
) -> InvestigationOrchestrator:
    return InvestigationOrchestrator(
        store=store,
        analysis=AnalysisStage(llm),
        follow_up=FollowUpStage(llm),
        plan=PlanStage(llm),
        reproduction=ReproductionStage(
            llm,
            runner,
            temp_dir=str(tmp_path / "work"),
            timeout_seconds=timeout_seconds,
            project_url=project_url,
        ),
        report=ReportStage(llm, store, blob_store, maintainer_id=maintainer_id),
        maintainer_id=maintainer_id,
    )


@pytest.fixture
def store() -> InMemoryIssueStore:
    return InMemoryIssueStore()


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def llm() -> ScriptedLanguageModel:
    return ScriptedLanguageModel()


@pytest.fixture
def runner() -> FakeProcessRunner:
    return FakeProcessRunner(exit_code=1)


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()
