"""Structured outputs of the model-backed stages.

Key Models:
- AnalysisResult: strictly validated triage of a raw report
- TestPlan: best-effort reproduction plan (no strict schema)
- GeneratedTestCode: model-written test sources
- ReproductionOutcome: what happened when the test artifact ran

The model is instructed to emit camelCase keys, so every model-facing field
carries a camelCase alias; Python code uses the snake_case names.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


# ============================================================
# Analysis
# ============================================================

class ProblemCategory(str, Enum):
    """What kind of request the report is."""

    BUG = "bug"
    FEATURE_REQUEST = "feature_request"
    IMPLEMENTATION_QUESTION = "implementation_question"
    INSTALLATION = "installation"
    OTHER = "other"


class Complexity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AnalysisResult(BaseModel):
    """
    Structured analysis of a raw problem report.

    Validation is strict: enum fields must use the fixed vocabularies and both
    list fields must be non-empty. A report whose model output fails any of
    these checks gets ``AnalysisResult.fallback()`` instead.
    """

    problem_category: ProblemCategory = Field(
        ..., alias="problemCategory", description="Kind of request"
    )
    project_component: str = Field(
        ..., alias="projectComponent", description="Component(s) the report concerns"
    )
    estimated_complexity: Complexity = Field(
        ..., alias="estimatedComplexity", description="Rough effort to reproduce and fix"
    )
    required_tools: List[str] = Field(
        ..., alias="requiredTools", description="Tools needed to debug the problem"
    )
    potential_solutions: List[str] = Field(
        ..., alias="potentialSolutions", description="Candidate fixes or answers"
    )
    reproducibility_steps: Optional[List[str]] = Field(
        None, alias="reproducibilitySteps", description="Steps that should trigger the defect"
    )
    additional_context: Optional[Dict[str, Any]] = Field(
        None, alias="additionalContext", description="Open map of extra findings"
    )

    @field_validator("required_tools", "potential_solutions")
    @classmethod
    def validate_non_empty(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("must be a non-empty list")
        return v

    @field_validator("project_component")
    @classmethod
    def validate_component(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("projectComponent must not be blank")
        return v

    @classmethod
    def fallback(cls) -> "AnalysisResult":
        """Deterministic analysis used when the model output is unusable."""
        return cls(
            problem_category=ProblemCategory.OTHER,
            project_component="unknown",
            estimated_complexity=Complexity.MEDIUM,
            required_tools=["manual-investigation"],
            potential_solutions=["needs more information"],
        )

    def to_prompt_json(self) -> Dict[str, Any]:
        """camelCase form embedded into follow-up prompts."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    class Config:
        populate_by_name = True


# ============================================================
# Planning
# ============================================================

class TestFileDescriptor(BaseModel):
    """A test file the plan expects to exist."""

    __test__ = False

    name: str = Field(..., description="File name")
    description: str = Field("", description="What the file covers")


class TestPlan(BaseModel):
    """
    Best-effort reproduction plan.

    Any JSON object the model returns is accepted: known keys are mapped onto
    fields, missing keys stay empty, unknown keys are kept as extras.
    """

    __test__ = False

    test_files: List[Any] = Field(default_factory=list, alias="testFiles")
    environment_setup: List[Any] = Field(default_factory=list, alias="environmentSetup")
    reproduction_steps: List[Any] = Field(default_factory=list, alias="reproductionSteps")
    verification_criteria: List[Any] = Field(default_factory=list, alias="verificationCriteria")
    required_tools: List[Any] = Field(default_factory=list, alias="requiredTools")
    test_approach: Any = Field("", alias="testApproach")
    is_default: bool = Field(False, description="True when the fixed default plan was used")

    @classmethod
    def from_object(cls, data: Dict[str, Any]) -> "TestPlan":
        """Accept an arbitrary decoded object as a plan.

        Values of the wrong shape are wrapped instead of rejected, so the only
        way to get the default plan is a decode failure.
        """
        normalized: Dict[str, Any] = dict(data)
        for key in ("testFiles", "environmentSetup", "reproductionSteps",
                    "verificationCriteria", "requiredTools"):
            value = normalized.get(key)
            if value is None:
                normalized.pop(key, None)
            elif not isinstance(value, list):
                normalized[key] = [value]
        normalized.pop("is_default", None)
        return cls.model_validate(normalized)

    @classmethod
    def default(cls) -> "TestPlan":
        return cls(
            test_files=[
                TestFileDescriptor(name="issue_test.py", description="Main test file to reproduce the issue").model_dump(),
                TestFileDescriptor(name="setup_helpers.py", description="Setup code and utilities").model_dump(),
            ],
            environment_setup=[
                "Clone the repository",
                "Install dependencies",
                "Configure test environment",
            ],
            reproduction_steps=[
                "Set up the test context",
                "Perform the operations described in the issue",
                "Check for the expected error or behavior",
            ],
            verification_criteria=[
                "The error mentioned in the issue occurs",
                "The behavior matches the user's description",
            ],
            required_tools=["Python", "pytest"],
            test_approach="Create a minimal reproduction that isolates the core issue",
            is_default=True,
        )

    class Config:
        populate_by_name = True
        extra = "allow"


# ============================================================
# Reproduction
# ============================================================

class GeneratedTestCode(BaseModel):
    """Contents of the two generated test sources."""

    main_test: str = Field(..., alias="mainTest", description="Source of the main test file")
    setup: str = Field(..., description="Source of the setup helper file")
    is_stub: bool = Field(False, description="True when the fixed stub pair was used")

    class Config:
        populate_by_name = True


class ReproductionOutcome(BaseModel):
    """
    Result of running the test artifact.

    ``success`` means the process completed without an infrastructure
    failure (it exited on its own before the deadline). ``reproduced`` follows
    the exit-code policy: 0 means the defect was observed.
    """

    success: bool = Field(..., description="Process finished on its own before the deadline")
    reproduced: bool = Field(..., description="Defect observed (exit code 0)")
    output: str = Field("", description="Captured standard output")
    error_output: str = Field("", description="Captured standard error")
    exit_code: Optional[int] = Field(None, description="Exit code, -1 when killed on deadline")
    execution_time_ms: int = Field(0, description="Wall-clock duration in milliseconds", ge=0)
    repository_url: Optional[str] = Field(None, description="External repository reference")
    main_test_file: Optional[str] = Field(None, description="Path of the executed test artifact")
    timed_out: bool = Field(False, description="The deadline fired before the process exited")
