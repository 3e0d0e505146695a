"""User-facing progress and escalation texts."""

from typing import Optional

HELP_OFFER = "I can help investigate this issue. Would you like me to start analyzing your problem?"
SESSION_EXPIRED = "This investigation session has expired. Please start a new help request."
INVESTIGATION_CANCELLED = "No problem! Feel free to ask again if you need help later."
INVESTIGATION_STARTED = "I'm analyzing your issue. This may take a moment..."
START_FAILED = (
    "Sorry, I encountered an error while starting the investigation. "
    "A maintainer will be notified."
)

ANALYZING = "🔍 I'm analyzing your issue. I'll ask follow-up questions if needed."
TESTING = "🧪 Setting up test environment to recreate your issue..."
REPRODUCED = (
    "✅ I've successfully recreated your issue! A test case has been created "
    "and a maintainer has been notified."
)
FAILED = "❌ I encountered an error while investigating your issue. A maintainer will be notified to help you."


def follow_up_questions(numbered_questions: str) -> str:
    return (
        "To better understand your issue, could you please answer these questions:\n\n"
        f"{numbered_questions}\n\n"
        "I'll use your answers to help recreate and investigate the problem."
    )


def not_reproduced(summary: str) -> str:
    return (
        "I've investigated your issue but wasn't able to reproduce it with the "
        f"information provided. Here's what I found:\n\n{summary}"
    )


def maintainer_escalation(maintainer_id: str, archive_url: Optional[str]) -> str:
    return (
        f"<@{maintainer_id}> I've reproduced this issue and created a test case. "
        f"Please check the details here: {archive_url or '(test results in database)'}"
    )


def maintainer_failure(maintainer_id: str) -> str:
    return f"<@{maintainer_id}> There was an error investigating this issue. Please check the logs."
