import asyncio
import json

import pytest

from conftest import VALID_ANALYSIS, ScriptedLanguageModel
from issue_investigator.core.json_recovery import TIER_DEFAULT, TIER_DIRECT, TIER_EXTRACTED
from issue_investigator.core.stages import AnalysisStage, parse_analysis
from issue_investigator.exceptions import LLMProviderError
from issue_investigator.models import AnalysisResult, Complexity, ProblemCategory


def _analyze(answer):
    stage = AnalysisStage(ScriptedLanguageModel({"analysis": answer}))
    return asyncio.run(stage.run("The app hangs when 50 users log in"))


def _assert_fallback(analysis: AnalysisResult):
    assert analysis.problem_category == ProblemCategory.OTHER
    assert analysis.project_component == "unknown"
    assert analysis.estimated_complexity == Complexity.MEDIUM
    assert analysis.required_tools == ["manual-investigation"]
    assert analysis.potential_solutions == ["needs more information"]


def test_valid_answer_is_used():
    analysis = _analyze(json.dumps(VALID_ANALYSIS))

    assert analysis.problem_category == ProblemCategory.BUG
    assert analysis.project_component == "database connection pool"
    assert analysis.estimated_complexity == Complexity.HIGH
    assert analysis.reproducibility_steps == VALID_ANALYSIS["reproducibilitySteps"]


def test_answer_wrapped_in_prose_is_extracted():
    raw = f"<think>hmm</think>\nHere is the analysis:\n```json\n{json.dumps(VALID_ANALYSIS)}\n```"
    analysis, tier = parse_analysis(raw)

    assert tier == TIER_EXTRACTED
    assert analysis.problem_category == ProblemCategory.BUG


def test_direct_tier_reported():
    _, tier = parse_analysis(json.dumps(VALID_ANALYSIS))
    assert tier == TIER_DIRECT


@pytest.mark.parametrize("overrides", [
    {"problemCategory": "crash"},
    {"estimatedComplexity": "extreme"},
    {"requiredTools": []},
    {"potentialSolutions": []},
    {"projectComponent": "   "},
    {"reproducibilitySteps": "just run it"},
    {"additionalContext": ["not", "a", "map"]},
])
def test_schema_violations_fall_back(overrides):
    data = dict(VALID_ANALYSIS, **overrides)
    analysis, tier = parse_analysis(json.dumps(data))

    assert tier == TIER_DEFAULT
    _assert_fallback(analysis)


def test_missing_required_field_falls_back():
    data = dict(VALID_ANALYSIS)
    del data["requiredTools"]
    _assert_fallback(_analyze(json.dumps(data)))


@pytest.mark.parametrize("raw", [
    "",
    "I think this is a bug in the pool.",
    "{broken json",
    "[1, 2, 3]",
    "null",
    '"just a string"',
    "{}",
])
def test_unusable_output_never_raises(raw):
    analysis = _analyze(raw)

    assert isinstance(analysis, AnalysisResult)
    assert analysis.problem_category == ProblemCategory.OTHER
    assert analysis.required_tools
    assert analysis.potential_solutions


def test_model_failure_falls_back():
    _assert_fallback(_analyze(LLMProviderError("All providers failed")))


def test_additional_context_map_is_kept():
    data = dict(VALID_ANALYSIS, additionalContext={"os": "linux", "workers": 4})
    analysis = _analyze(json.dumps(data))

    assert analysis.additional_context == {"os": "linux", "workers": 4}
    assert analysis.to_prompt_json()["additionalContext"] == {"os": "linux", "workers": 4}


def test_deeply_nested_answer_falls_back():
    _assert_fallback(_analyze("[" * 100000 + "]" * 100000))
