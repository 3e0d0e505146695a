import asyncio
import json
import time

import pytest

from conftest import VALID_ANALYSIS, FakeProcessRunner, ScriptedLanguageModel
from issue_investigator.core.stages import ReproductionStage, classify_exit_code, parse_test_code
from issue_investigator.exceptions import RepositoryCloneError
from issue_investigator.models import AnalysisResult, TestPlan

ANALYSIS = AnalysisResult.model_validate(VALID_ANALYSIS)
REPORT = "The app hangs when 50 users log in at once"


def _stage(tmp_path, runner, llm=None, **kwargs) -> ReproductionStage:
    return ReproductionStage(
        llm or ScriptedLanguageModel(),
        runner,
        temp_dir=str(tmp_path),
        **kwargs,
    )


def _run(stage: ReproductionStage, issue_id: int = 7):
    return asyncio.run(stage.run(issue_id, REPORT, ANALYSIS, TestPlan.default()))


@pytest.mark.parametrize("exit_code, reproduced", [(0, True), (1, False), (137, False)])
def test_exit_code_classification(tmp_path, exit_code, reproduced):
    runner = FakeProcessRunner(exit_code=exit_code, stdout="out\n", stderr="err\n")
    outcome = _run(_stage(tmp_path, runner))

    assert outcome.success is True
    assert outcome.reproduced is reproduced
    assert outcome.exit_code == exit_code
    assert outcome.output == "out\n"
    assert outcome.error_output == "err\n"
    assert outcome.timed_out is False
    assert runner.processes[-1].killed
    assert runner.processes[-1].released


def test_classify_exit_code_policy():
    assert classify_exit_code(0) is True
    assert classify_exit_code(2) is False
    assert classify_exit_code(-1) is False
    assert classify_exit_code(None) is False


def test_process_that_never_exits_is_killed_at_deadline(tmp_path):
    runner = FakeProcessRunner(exit_code=None, stdout="partial output\n")
    stage = _stage(tmp_path, runner, timeout_seconds=0.2)

    started = time.monotonic()
    outcome = _run(stage)
    elapsed = time.monotonic() - started

    assert elapsed < 2.0
    assert outcome.success is False
    assert outcome.reproduced is False
    assert outcome.exit_code == -1
    assert outcome.timed_out is True
    assert "timed out" in outcome.error_output
    assert outcome.output == "partial output\n"
    assert runner.processes[-1].killed
    assert runner.processes[-1].released


def test_artifacts_are_written(tmp_path):
    runner = FakeProcessRunner(exit_code=1)
    outcome = _run(_stage(tmp_path, runner), issue_id=7)

    tests_dir = tmp_path / "issue-7" / "tests"
    assert outcome.main_test_file == str(tests_dir / "issue_test.py")
    assert (tests_dir / "issue_test.py").read_text() == json.loads(
        ScriptedLanguageModel().answers["code"]
    )["mainTest"]
    assert (tests_dir / "setup_helpers.py").exists()

    manifest = json.loads((tests_dir / "manifest.json").read_text())
    assert manifest["name"] == "issue-7-test"
    assert manifest["generated"] is True

    readme = (tests_dir / "README.md").read_text()
    assert "# Test Case for Issue #7" in readme
    assert REPORT in readme


def test_process_runs_in_tests_dir_with_flag(tmp_path):
    runner = FakeProcessRunner(exit_code=1)
    _run(_stage(tmp_path, runner, test_command=["python3", "issue_test.py"]), issue_id=3)

    spawn = runner.spawned[-1]
    assert spawn["args"] == ["python3", "issue_test.py"]
    assert spawn["cwd"] == tmp_path / "issue-3" / "tests"
    assert spawn["env"]["ISSUE_INVESTIGATOR_TEST"] == "1"


def test_unparsable_code_uses_stub(tmp_path):
    llm = ScriptedLanguageModel({"code": "Here is some code: print('hi')"})
    runner = FakeProcessRunner(exit_code=1)
    _run(_stage(tmp_path, runner, llm=llm), issue_id=4)

    tests_dir = tmp_path / "issue-4" / "tests"
    main_test = (tests_dir / "issue_test.py").read_text()
    assert "could not be automatically reproduced" in main_test
    assert "sys.exit(1)" in main_test
    assert json.loads((tests_dir / "manifest.json").read_text())["generated"] is False


def test_parse_test_code_requires_main_test():
    code = parse_test_code('{"mainTest": "", "setup": ""}', 9)
    assert code.is_stub

    code = parse_test_code('{"mainTest": "print(1)", "setup": ""}', 9)
    assert not code.is_stub
    assert code.main_test == "print(1)"


def test_model_failure_uses_stub(tmp_path):
    llm = ScriptedLanguageModel({"code": ConnectionError("ollama down")})
    outcome = _run(_stage(tmp_path, FakeProcessRunner(exit_code=1), llm=llm), issue_id=5)

    assert outcome.success
    assert "could not be automatically reproduced" in (tmp_path / "issue-5" / "tests" / "issue_test.py").read_text()


def test_clone_runs_before_tests(tmp_path):
    runner = FakeProcessRunner(exit_code=0)
    stage = _stage(tmp_path, runner, project_url="https://example.com/project.git")
    outcome = _run(stage, issue_id=8)

    clone = runner.spawned[0]
    assert clone["args"] == ["git", "clone", "https://example.com/project.git", str(tmp_path / "issue-8" / "project")]
    assert clone["env"]["GIT_TERMINAL_PROMPT"] == "0"
    assert outcome.repository_url == "https://example.com/project.git"
    assert len(runner.spawned) == 2
    assert runner.processes[0].released


def test_clone_failure_propagates(tmp_path):
    runner = FakeProcessRunner(exit_code=0, clone_exit_code=128, clone_stderr="fatal: repository not found")
    stage = _stage(tmp_path, runner, project_url="https://example.com/missing.git")

    with pytest.raises(RepositoryCloneError) as exc_info:
        _run(stage)

    assert "Git clone failed with code 128" in str(exc_info.value)
    assert exc_info.value.context["stderr"] == "fatal: repository not found"
    assert len(runner.spawned) == 1


def test_deeply_nested_code_answer_uses_stub():
    code = parse_test_code('{"mainTest": ' + "[" * 100000 + "]" * 100000 + "}", 11)
    assert code.is_stub
    assert parse_test_code("[" * 100000 + "]" * 100000, 11).is_stub


def test_clone_that_never_finishes_is_killed(tmp_path):
    runner = FakeProcessRunner(exit_code=0, clone_exit_code=None)
    stage = _stage(tmp_path, runner, project_url="https://example.com/slow.git", clone_timeout_seconds=0.2)

    started = time.monotonic()
    with pytest.raises(RepositoryCloneError) as exc_info:
        _run(stage)

    assert time.monotonic() - started < 2.0
    assert exc_info.value.exit_code is None
    assert "timed out" in exc_info.value.context["stderr"]
    assert runner.processes[0].killed
    assert runner.processes[0].released
    assert len(runner.spawned) == 1
