"""
Analysis stage: raw report text to a validated ``AnalysisResult``.

The stage never raises. Unusable model output, a failed model call or a
schema violation all produce ``AnalysisResult.fallback()``, which the
pipeline treats as a degraded success.
"""

import logging
from typing import Any, Optional, Tuple

from pydantic import ValidationError

from issue_investigator.core.json_recovery import TIER_DEFAULT, recover_json
from issue_investigator.infrastructure.llm import LanguageModel
from issue_investigator.models import AnalysisResult
from issue_investigator.utils import format_error

from .prompts import ANALYSIS_SYSTEM_PROMPT, analysis_prompt

logger = logging.getLogger(__name__)


def validate_analysis(data: Any) -> Optional[AnalysisResult]:
    """Strict schema check. Returns None when ``data`` is not a valid analysis."""
    if not isinstance(data, dict):
        return None
    try:
        return AnalysisResult.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Analysis failed validation: {e.error_count()} error(s)")
        logger.debug(str(e))
        return None


def parse_analysis(raw: Optional[str]) -> Tuple[AnalysisResult, str]:
    """
    Recover an analysis from raw model output.

    Direct decode, then the first balanced object. A decode that succeeds but
    fails validation goes straight to the fallback.

    Returns:
        Tuple of (analysis, recovery tier)
    """
    return recover_json(
        raw,
        "{",
        accept=validate_analysis,
        default=AnalysisResult.fallback,
        label="analysis",
        extract_after_reject=False,
    )


class AnalysisStage:
    def __init__(self, llm: LanguageModel):
        self.llm = llm

    async def run(self, report: str) -> AnalysisResult:
        """Analyze a report. Always returns a schema-valid result."""
        logger.info("Analyzing user report with LLM...")
        try:
            raw = await self.llm.complete(analysis_prompt(report), ANALYSIS_SYSTEM_PROMPT)
        except Exception as e:
            logger.error(f"Error analyzing user report: {format_error(e)}")
            return AnalysisResult.fallback()

        analysis, tier = parse_analysis(raw)
        if tier == TIER_DEFAULT:
            logger.warning("Using fallback analysis")
        else:
            logger.info(f"Successfully analyzed user report ({tier} decode)")
        return analysis
