"""Utility Functions"""

from issue_investigator.utils.errors import format_error, short_error
from issue_investigator.utils.resilience import (
    service_startup_retry,
    create_custom_retry,
)

__all__ = [
    "format_error",
    "short_error",
    "service_startup_retry",
    "create_custom_retry",
]
