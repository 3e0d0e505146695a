"""
Chat intake flow in front of the investigation pipeline.

A report in the help channel gets an offer to investigate. The reporter's
answer to that offer either cancels it or opens the issue and runs the
pipeline. The chat adapter calls ``offer_help`` for every new report and
``answer`` when the reporter presses one of the offer's buttons.
"""

import logging
from typing import Optional

from issue_investigator.core import messages
from issue_investigator.core.intake import ProblemReport, open_issue
from issue_investigator.core.orchestrator import InvestigationOrchestrator, InvestigationRun
from issue_investigator.core.reporter import BestEffortReporter, MessageHandle, Reporter
from issue_investigator.infrastructure.persistence import IssueStore
from issue_investigator.utils import format_error

from .sessions import HelpSession, HelpSessionRegistry

logger = logging.getLogger(__name__)


class HelpDesk:
    """
    Offers help on incoming reports and starts investigations on acceptance.

    Args:
        store: Store the accepted report is opened in
        orchestrator: Runs the investigation
        sessions: Pending offers (a fresh registry when None)
    """

    def __init__(
        self,
        store: IssueStore,
        orchestrator: InvestigationOrchestrator,
        sessions: Optional[HelpSessionRegistry] = None,
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.sessions = sessions if sessions is not None else HelpSessionRegistry()

    async def offer_help(self, report: ProblemReport, reporter: Reporter) -> Optional[HelpSession]:
        """
        Reply to ``report`` with an offer to investigate.

        Returns:
            The opened session, or None when the user already has a pending
            offer or the offer could not be sent
        """
        self.sessions.sweep()
        if self.sessions.has_active_session(report.user_id):
            logger.debug(f"User {report.user_id} already has a pending help offer")
            return None

        prompt = await BestEffortReporter(reporter).reply(messages.HELP_OFFER)
        if prompt is None:
            return None
        return self.sessions.open(prompt.id, report)

    async def answer(
        self,
        prompt: MessageHandle,
        accepted: bool,
        reporter: Reporter,
    ) -> Optional[InvestigationRun]:
        """
        Handle the reporter's answer to the offer in ``prompt``.

        Returns:
            The investigation run when the offer was accepted, otherwise None

        Raises:
            Exception: If the issue cannot be opened (the prompt is edited
                to say so first)
        """
        notifier = BestEffortReporter(reporter)
        session = self.sessions.get(prompt.id)
        if session is None:
            await notifier.reply(messages.SESSION_EXPIRED)
            return None

        self.sessions.close(prompt.id)
        if not accepted:
            logger.info(f"User {session.user_id} declined the investigation")
            await notifier.edit(prompt, messages.INVESTIGATION_CANCELLED)
            return None

        progress = await notifier.edit(prompt, messages.INVESTIGATION_STARTED)
        try:
            issue = await open_issue(self.store, session.report)
        except Exception as e:
            logger.error(f"Could not open an issue for user {session.user_id}: {format_error(e)}")
            await notifier.edit(progress, messages.START_FAILED)
            raise
        return await self.orchestrator.investigate(issue, reporter, progress)
