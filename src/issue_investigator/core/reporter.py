"""Reply/edit contract towards the person who reported an issue.

The chat adapter implements ``Reporter``. The pipeline only ever talks to it
through ``BestEffortReporter``, so a failing transport is logged and never
stops an investigation.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, Field

from issue_investigator.utils import format_error

logger = logging.getLogger(__name__)


class MessageHandle(BaseModel):
    """Reference to a message the reporter has sent."""

    id: str = Field(..., description="Transport message identifier")
    content: str = Field("", description="Last content written to the message")


class Reporter(ABC):
    @abstractmethod
    async def reply(self, content: str) -> MessageHandle:
        """Reply to the message that carried the report."""

    @abstractmethod
    async def edit(self, handle: MessageHandle, content: str) -> MessageHandle:
        """Replace the content of a message sent earlier."""


class BestEffortReporter:
    """Wraps a ``Reporter``; failures are logged and reported as None."""

    def __init__(self, reporter: Reporter):
        self.reporter = reporter

    async def reply(self, content: str) -> Optional[MessageHandle]:
        try:
            return await self.reporter.reply(content)
        except Exception as e:
            logger.error(f"Failed to send reply: {format_error(e)}")
            return None

    async def edit(self, handle: Optional[MessageHandle], content: str) -> Optional[MessageHandle]:
        """Edit ``handle``, or send a new reply when there is no handle."""
        if handle is None:
            return await self.reply(content)
        try:
            return await self.reporter.edit(handle, content)
        except Exception as e:
            logger.error(f"Failed to edit message {handle.id}: {format_error(e)}")
            return handle
