"""
Help sessions: which users are mid-way through a help request.

A session opens when the bot prompts a user to confirm an investigation and
closes when the user answers (or the session expires). Sessions are keyed by
the bot's prompt message id. Expiry is checked lazily on lookup and by an
explicit ``sweep()``; nothing runs on a timer.
"""

import logging
import time
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from issue_investigator.core.intake import ProblemReport

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL_SECONDS = 30 * 60


class HelpSession(BaseModel):
    prompt_message_id: str = Field(..., description="Bot message awaiting the user's answer")
    user_id: str
    origin_message_id: str = Field(..., description="Message that carried the report")
    opened_at: float = Field(..., description="Clock reading when the session opened")
    report: ProblemReport = Field(..., description="Report the help offer answered")


class HelpSessionRegistry:
    """
    Explicit per-conversation state, passed to whoever handles chat events.

    Args:
        ttl_seconds: Session lifetime (default 30 minutes)
        clock: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, HelpSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _expired(self, session: HelpSession, now: float) -> bool:
        return now - session.opened_at >= self.ttl_seconds

    def open(self, prompt_message_id: str, report: ProblemReport) -> HelpSession:
        session = HelpSession(
            prompt_message_id=prompt_message_id,
            user_id=report.user_id,
            origin_message_id=report.origin_message_id,
            opened_at=self._clock(),
            report=report,
        )
        self._sessions[prompt_message_id] = session
        logger.debug(f"Opened help session {prompt_message_id} for user {report.user_id}")
        return session

    def get(self, prompt_message_id: str) -> Optional[HelpSession]:
        """Return the live session, dropping it first if it has expired."""
        session = self._sessions.get(prompt_message_id)
        if session is None:
            return None
        if self._expired(session, self._clock()):
            del self._sessions[prompt_message_id]
            logger.info(f"Help session {prompt_message_id} expired")
            return None
        return session

    def close(self, prompt_message_id: str) -> Optional[HelpSession]:
        return self._sessions.pop(prompt_message_id, None)

    def has_active_session(self, user_id: str) -> bool:
        now = self._clock()
        return any(
            s.user_id == user_id and not self._expired(s, now)
            for s in self._sessions.values()
        )

    def sweep(self) -> List[HelpSession]:
        """Drop every expired session and return them."""
        now = self._clock()
        expired = [s for s in self._sessions.values() if self._expired(s, now)]
        for session in expired:
            del self._sessions[session.prompt_message_id]
        if expired:
            logger.info(f"Swept {len(expired)} expired help session(s)")
        return expired
