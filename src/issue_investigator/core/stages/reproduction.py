"""
Reproduction stage: build a test artifact for an issue and run it.

Steps, in order:
1. Clone the configured project into the working directory (failure is fatal)
2. Ask the model for the test sources, or fall back to a stub pair
3. Write the sources, a manifest and a README under ``tests/``
4. Run the main test as a child process with ``tests/`` as its cwd
5. Race the process against a hard deadline and kill it if the deadline wins
6. Classify the outcome by exit code

Classification is a heuristic with no understanding of the subject code:
exit code 0 means the defect was reproduced, anything else (including a
forced kill) means it was not.

Working directory layout::

    {temp_dir}/issue-{id}/
        project/                 clone target (optional)
        tests/issue_test.py
        tests/setup_helpers.py
        tests/manifest.json
        tests/README.md
"""

import asyncio
import contextlib
import json
import logging
import os
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from pydantic import ValidationError

from issue_investigator.core.json_recovery import TIER_DEFAULT, recover_json
from issue_investigator.exceptions import RepositoryCloneError
from issue_investigator.infrastructure.llm import LanguageModel
from issue_investigator.infrastructure.process_runner import ProcessRunner
from issue_investigator.models import AnalysisResult, GeneratedTestCode, ReproductionOutcome, TestPlan
from issue_investigator.utils import format_error

from .prompts import REPRODUCTION_CODE_SYSTEM_PROMPT, reproduction_code_prompt

logger = logging.getLogger(__name__)

MAIN_TEST_FILE = "issue_test.py"
SETUP_FILE = "setup_helpers.py"
TEST_ENV_FLAG = "ISSUE_INVESTIGATOR_TEST"
DEFAULT_TIMEOUT_SECONDS = 60.0
TIMEOUT_NOTICE = "Test timed out"
OUTPUT_GRACE_SECONDS = 1.0
DEFAULT_CLONE_TIMEOUT_SECONDS = 300.0


def stub_test_code(issue_id: int) -> GeneratedTestCode:
    """Fixed test pair that always reports "not reproduced" (exit code 1)."""
    main_test = f'''"""Test file for issue #{issue_id}."""

import sys

from setup_helpers import cleanup, setup_test


def check_issue():
    print("Beginning test for issue reproduction")
    context = setup_test()
    print(f"Test setup completed: {{context['result']}}")
    print("Attempting to reproduce issue...")
    print("Issue could not be automatically reproduced")
    print("Manual investigation required")
    return {{
        "reproduced": False,
        "details": "Automatic reproduction not possible with available information",
    }}


if __name__ == "__main__":
    try:
        result = check_issue()
    finally:
        cleanup()
    print(f"Test completed with result: {{result}}")
    sys.exit(1)
'''
    setup = f'''"""Setup helpers for issue #{issue_id}."""


def setup_test():
    print("Setting up test environment")
    return {{"result": "Test context created"}}


def cleanup():
    print("Cleaning up test resources")
'''
    return GeneratedTestCode(main_test=main_test, setup=setup, is_stub=True)


def _as_test_code(data: Any) -> Optional[GeneratedTestCode]:
    if not isinstance(data, dict):
        return None
    try:
        code = GeneratedTestCode.model_validate(data)
    except ValidationError:
        return None
    if not code.main_test.strip():
        return None
    return code.model_copy(update={"is_stub": False})


def parse_test_code(raw: Optional[str], issue_id: int) -> GeneratedTestCode:
    code, tier = recover_json(
        raw,
        "{",
        accept=_as_test_code,
        default=lambda: stub_test_code(issue_id),
        label="test code",
    )
    if tier == TIER_DEFAULT:
        logger.warning(f"Using stub test code for issue #{issue_id}")
    return code


def classify_exit_code(exit_code: Optional[int]) -> bool:
    """Exit code 0 means the defect was reproduced."""
    return exit_code == 0


class ReproductionStage:
    """
    Materializes and runs the reproduction test for one issue.

    Args:
        llm: Model used to write the test sources
        runner: Spawns the clone and test processes
        temp_dir: Root of per-issue working directories
        timeout_seconds: Hard wall-clock deadline for the test process
        project_url: Repository cloned into ``project/`` when set
        test_command: Command run inside ``tests/`` (default: ``python issue_test.py``)
        git_executable: Version-control binary used for the clone
        clone_timeout_seconds: Deadline for the clone process
    """

    def __init__(
        self,
        llm: LanguageModel,
        runner: ProcessRunner,
        temp_dir: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        project_url: Optional[str] = None,
        test_command: Optional[Sequence[str]] = None,
        git_executable: str = "git",
        clone_timeout_seconds: float = DEFAULT_CLONE_TIMEOUT_SECONDS,
    ):
        self.llm = llm
        self.runner = runner
        self.temp_dir = Path(temp_dir)
        self.timeout_seconds = timeout_seconds
        self.project_url = project_url
        self.test_command = list(test_command) if test_command else [sys.executable, MAIN_TEST_FILE]
        self.git_executable = git_executable
        self.clone_timeout_seconds = clone_timeout_seconds

    def working_dir(self, issue_id: int) -> Path:
        return self.temp_dir / f"issue-{issue_id}"

    def prepare_working_dir(self, issue_id: int) -> Path:
        workdir = self.working_dir(issue_id)
        workdir.mkdir(parents=True, exist_ok=True)
        return workdir

    async def run(
        self,
        issue_id: int,
        report: str,
        analysis: AnalysisResult,
        plan: TestPlan,
    ) -> ReproductionOutcome:
        """
        Run every step for one issue.

        Raises:
            RepositoryCloneError: If the configured project cannot be cloned
        """
        workdir = self.prepare_working_dir(issue_id)

        repository_url = None
        if self.project_url:
            await self.clone_repository(self.project_url, workdir / "project")
            repository_url = self.project_url

        code = await self.generate_test_code(issue_id, report, analysis, plan)
        main_test_file = self.write_artifacts(issue_id, report, code, workdir)

        outcome = await self.execute(main_test_file.parent)
        return outcome.model_copy(update={
            "repository_url": repository_url,
            "main_test_file": str(main_test_file),
        })

    async def clone_repository(self, repository_url: str, target_dir: Path):
        """
        Clone the project under ``clone_timeout_seconds``.

        Git never prompts for credentials here; a repository that needs them
        fails instead of waiting on a terminal.
        """
        logger.info(f"Cloning {repository_url} into {target_dir}")
        args = [self.git_executable, "clone", repository_url, str(target_dir)]
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        try:
            process = await self.runner.spawn(args, env=env)
        except OSError as e:
            raise RepositoryCloneError(repository_url, None, str(e))

        try:
            exit_code = await asyncio.wait_for(process.wait(), timeout=self.clone_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Clone of {repository_url} exceeded {self.clone_timeout_seconds}s, killing it")
            process.kill()
            await process.release(OUTPUT_GRACE_SECONDS)
            raise RepositoryCloneError(
                repository_url, None, f"clone timed out after {self.clone_timeout_seconds}s"
            )

        await process.release(OUTPUT_GRACE_SECONDS)
        if exit_code != 0:
            raise RepositoryCloneError(repository_url, exit_code, process.stderr)
        logger.info(f"Cloned {repository_url}")

    async def generate_test_code(
        self,
        issue_id: int,
        report: str,
        analysis: AnalysisResult,
        plan: TestPlan,
    ) -> GeneratedTestCode:
        prompt = reproduction_code_prompt(report, analysis, plan.model_dump(mode="json", by_alias=True))
        try:
            raw = await self.llm.complete(prompt, REPRODUCTION_CODE_SYSTEM_PROMPT)
        except Exception as e:
            logger.error(f"Error generating test code for issue #{issue_id}: {format_error(e)}")
            return stub_test_code(issue_id)
        return parse_test_code(raw, issue_id)

    def write_artifacts(self, issue_id: int, report: str, code: GeneratedTestCode, workdir: Path) -> Path:
        """Write the test sources, manifest and README. Returns the main test path."""
        tests_dir = workdir / "tests"
        tests_dir.mkdir(parents=True, exist_ok=True)

        main_test_file = tests_dir / MAIN_TEST_FILE
        main_test_file.write_text(code.main_test, encoding="utf-8")
        (tests_dir / SETUP_FILE).write_text(code.setup, encoding="utf-8")

        manifest: Dict[str, Any] = {
            "name": f"issue-{issue_id}-test",
            "version": "1.0.0",
            "description": f"Test case for issue #{issue_id}",
            "run": f"python {MAIN_TEST_FILE}",
            "files": [MAIN_TEST_FILE, SETUP_FILE],
            "generated": not code.is_stub,
        }
        (tests_dir / "manifest.json").write_text(json.dumps(manifest, indent=2), encoding="utf-8")

        readme = f"""# Test Case for Issue #{issue_id}

## Description
{report}

## Setup Instructions
1. Install any dependencies the test imports
2. Run the test: `python {MAIN_TEST_FILE}`

## Expected Results
The test will attempt to reproduce the issue described above.
Exit code 0 means the issue was reproduced.
"""
        (tests_dir / "README.md").write_text(readme, encoding="utf-8")
        logger.info(f"Wrote test artifacts for issue #{issue_id} to {tests_dir}")
        return main_test_file

    def _child_env(self) -> Dict[str, str]:
        env = dict(os.environ)
        env[TEST_ENV_FLAG] = "1"
        return env

    async def execute(self, tests_dir: Path) -> ReproductionOutcome:
        """
        Run the test command under the deadline.

        Whichever comes first, the exit of the test process or the deadline,
        decides the outcome. Processes the test started are killed either way
        and their pipes are drained for at most ``OUTPUT_GRACE_SECONDS``. On
        timeout the outcome is success=False, reproduced=False, exit_code=-1.
        """
        started = time.monotonic()
        process = await self.runner.spawn(self.test_command, cwd=tests_dir, env=self._child_env())
        wait_task = asyncio.ensure_future(process.wait())

        done, _ = await asyncio.wait({wait_task}, timeout=self.timeout_seconds)
        if wait_task in done:
            exit_code = wait_task.result()
            elapsed = int((time.monotonic() - started) * 1000)
            # Leftover helpers would otherwise keep the output pipes open
            process.kill()
            await process.release(OUTPUT_GRACE_SECONDS)
            reproduced = classify_exit_code(exit_code)
            logger.info(f"Test process exited with code {exit_code} after {elapsed}ms (reproduced={reproduced})")
            return ReproductionOutcome(
                success=True,
                reproduced=reproduced,
                output=process.stdout,
                error_output=process.stderr,
                exit_code=exit_code,
                execution_time_ms=elapsed,
            )

        logger.warning(f"Test process exceeded {self.timeout_seconds}s deadline, killing it")
        process.kill()
        wait_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await wait_task
        await process.release(OUTPUT_GRACE_SECONDS)
        elapsed = int((time.monotonic() - started) * 1000)

        error_output = process.stderr
        error_output = f"{error_output}\n{TIMEOUT_NOTICE}" if error_output else TIMEOUT_NOTICE
        return ReproductionOutcome(
            success=False,
            reproduced=False,
            output=process.stdout,
            error_output=error_output,
            exit_code=-1,
            execution_time_ms=elapsed,
            timed_out=True,
        )

