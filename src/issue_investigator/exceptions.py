"""Exception hierarchy for the investigation pipeline.

Errors fall into three tiers:
- Recoverable: ``ModelOutputError`` is raised and handled inside a stage,
  which substitutes a deterministic fallback.
- Unrecoverable: everything else that escapes a stage is caught once by the
  orchestrator and recorded as a FAILED audit entry.
- Tolerated: ``BlobStorageError`` is logged and swallowed by the report stage.
"""

from typing import Any, Dict, Optional


class InvestigatorError(Exception):
    """Base error carrying a machine-readable code and context map."""

    def __init__(
        self,
        message: str,
        error_code: str = "INVESTIGATOR_ERROR",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

    def __str__(self) -> str:
        return self.message


class LLMProviderError(InvestigatorError):
    """Raised when no language model provider could answer a request."""

    def __init__(self, message: str, error_code: str = "LLM_PROVIDER_ERROR", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code=error_code, context=context)


class ModelOutputError(InvestigatorError):
    """Model text could not be turned into the expected structure."""

    def __init__(self, message: str, raw_output: str = "", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="MODEL_OUTPUT_ERROR", context=context)
        self.raw_output = raw_output


class StoreError(InvestigatorError):
    """Raised by issue store implementations."""

    def __init__(self, message: str, error_code: str = "STORE_ERROR", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code=error_code, context=context)


class IssueNotFoundError(StoreError):
    def __init__(self, issue_id: int):
        super().__init__(
            f"Issue {issue_id} not found",
            error_code="ISSUE_NOT_FOUND",
            context={"issue_id": issue_id},
        )
        self.issue_id = issue_id


class InvalidTransitionError(InvestigatorError):
    """Raised when a status change would move an issue backwards."""

    def __init__(self, from_status: Any, to_status: Any):
        super().__init__(
            f"Invalid transition: {from_status} → {to_status}",
            error_code="INVALID_TRANSITION",
            context={"from_status": str(from_status), "to_status": str(to_status)},
        )


class RepositoryCloneError(InvestigatorError):
    def __init__(self, repository_url: str, exit_code: Optional[int], stderr: str = ""):
        super().__init__(
            f"Git clone failed with code {exit_code}",
            error_code="CLONE_FAILED",
            context={"repository_url": repository_url, "exit_code": exit_code, "stderr": stderr},
        )
        self.exit_code = exit_code


class BlobStorageError(InvestigatorError):
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="BLOB_STORAGE_ERROR", context=context)


class ExampleLoadError(InvestigatorError):
    """Raised by the harness when an example file cannot be used."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Could not load example {path}: {reason}",
            error_code="EXAMPLE_LOAD_ERROR",
            context={"path": path},
        )
