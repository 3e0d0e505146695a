"""Chat-side conversation state and intake flow."""

from .help_desk import HelpDesk
from .sessions import DEFAULT_SESSION_TTL_SECONDS, HelpSession, HelpSessionRegistry

__all__ = ["HelpDesk", "HelpSession", "HelpSessionRegistry", "DEFAULT_SESSION_TTL_SECONDS"]
