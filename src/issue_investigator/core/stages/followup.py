"""Follow-up questions posted while an issue is being analyzed.

The questions are informational: the pipeline posts them and carries on
without waiting for an answer.
"""

import logging
from typing import Any, List, Optional

from issue_investigator.core.json_recovery import recover_json
from issue_investigator.infrastructure.llm import LanguageModel
from issue_investigator.models import AnalysisResult
from issue_investigator.utils import format_error

from .prompts import FOLLOW_UP_SYSTEM_PROMPT, follow_up_prompt

logger = logging.getLogger(__name__)

DEFAULT_FOLLOW_UP_QUESTIONS = (
    "Could you provide more details about your setup?",
    "What steps have you already tried?",
    "Can you share any error messages you're seeing?",
)


def default_questions() -> List[str]:
    return list(DEFAULT_FOLLOW_UP_QUESTIONS)


def _as_question_list(data: Any) -> Optional[List[str]]:
    if not isinstance(data, list) or not all(isinstance(q, str) for q in data):
        return None
    return data


def parse_questions(raw: Optional[str]) -> List[str]:
    questions, _ = recover_json(
        raw, "[", accept=_as_question_list, default=default_questions, label="follow-up questions"
    )
    return questions


def format_questions(questions: List[str]) -> str:
    """Numbered list used in the progress message."""
    return "\n".join(f"{i}. {q}" for i, q in enumerate(questions, 1))


class FollowUpStage:
    def __init__(self, llm: LanguageModel):
        self.llm = llm

    async def run(self, report: str, analysis: AnalysisResult) -> List[str]:
        try:
            raw = await self.llm.complete(follow_up_prompt(report, analysis), FOLLOW_UP_SYSTEM_PROMPT)
        except Exception as e:
            logger.error(f"Error generating follow-up questions: {format_error(e)}")
            return default_questions()
        return parse_questions(raw)
