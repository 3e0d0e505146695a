"""Plan stage: best-effort reproduction plan for an analyzed report."""

import logging
from typing import Any, Optional

from pydantic import ValidationError

from issue_investigator.core.json_recovery import recover_json
from issue_investigator.infrastructure.llm import LanguageModel
from issue_investigator.models import AnalysisResult, TestPlan
from issue_investigator.utils import format_error

from .prompts import PLAN_SYSTEM_PROMPT, plan_prompt

logger = logging.getLogger(__name__)


def _as_plan(data: Any) -> Optional[TestPlan]:
    # Any object is a plan; there is no field-level schema.
    if not isinstance(data, dict):
        return None
    try:
        return TestPlan.from_object(data)
    except ValidationError:
        return None


def parse_plan(raw: Optional[str]) -> TestPlan:
    plan, _ = recover_json(raw, "{", accept=_as_plan, default=TestPlan.default, label="test plan")
    return plan


class PlanStage:
    """Asks the model for a test plan. Never raises."""

    def __init__(self, llm: LanguageModel):
        self.llm = llm

    async def run(self, report: str, analysis: AnalysisResult) -> TestPlan:
        logger.info("Planning testing approach...")
        try:
            raw = await self.llm.complete(plan_prompt(report, analysis), PLAN_SYSTEM_PROMPT)
        except Exception as e:
            logger.error(f"Error planning testing approach: {format_error(e)}")
            return TestPlan.default()
        return parse_plan(raw)
