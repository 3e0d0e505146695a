"""Pipeline stages.

Each stage wraps one model-backed step. Analysis, follow-up and plan never
raise; reproduction raises only when the project clone fails; report
swallows archive failures.
"""

from .analysis import AnalysisStage, parse_analysis, validate_analysis
from .followup import DEFAULT_FOLLOW_UP_QUESTIONS, FollowUpStage, format_questions, parse_questions
from .plan import PlanStage, parse_plan
from .report import ReportOutcome, ReportStage, template_summary, terminal_status
from .reproduction import ReproductionStage, classify_exit_code, parse_test_code, stub_test_code

__all__ = [
    "AnalysisStage",
    "parse_analysis",
    "validate_analysis",
    "FollowUpStage",
    "DEFAULT_FOLLOW_UP_QUESTIONS",
    "format_questions",
    "parse_questions",
    "PlanStage",
    "parse_plan",
    "ReproductionStage",
    "classify_exit_code",
    "parse_test_code",
    "stub_test_code",
    "ReportStage",
    "ReportOutcome",
    "template_summary",
    "terminal_status",
]
