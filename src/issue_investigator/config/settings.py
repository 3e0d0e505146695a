"""Runtime settings for the investigation pipeline.

Settings are read from environment variables (optionally from a ``.env``
file) once and shared through ``get_settings()``. Components never read the
environment themselves; they receive the values they need at construction.
"""

import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


def _default_test_command() -> List[str]:
    return [sys.executable, "issue_test.py"]


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid value for {name}: {raw!r}, using {default}")
        return default


class InvestigatorSettings(BaseModel):
    """All tunables of the pipeline and its collaborators."""

    # Language model
    llm_provider: str = Field("local", description="Primary provider: 'local' (Ollama) or 'openai'")
    ollama_base_url: str = Field("http://localhost:11434", description="Ollama server URL")
    ollama_model: str = Field("qwen3", description="Ollama model name")
    openai_api_key: Optional[str] = Field(None, description="OpenAI-compatible API key")
    openai_model: str = Field("gpt-4o", description="OpenAI-compatible model name")
    openai_base_url: str = Field("https://api.openai.com/v1", description="OpenAI-compatible base URL")
    llm_request_timeout: float = Field(120.0, description="Per-request model timeout in seconds", gt=0)

    # Reproduction
    temp_dir: str = Field("./temp", description="Root of per-issue working directories")
    open_source_project_url: Optional[str] = Field(
        None, description="Repository cloned into each working directory when set"
    )
    test_timeout_seconds: float = Field(60.0, description="Hard deadline for the test process", gt=0)
    clone_timeout_seconds: float = Field(300.0, description="Deadline for cloning the project", gt=0)
    test_command: List[str] = Field(
        default_factory=_default_test_command,
        description="Command executed inside the tests/ directory",
    )

    # Escalation
    maintainer_id: Optional[str] = Field(None, description="Chat identity mentioned on escalation")

    # Collaborators
    store_backend: str = Field("memory", description="'memory' or 'redis'")
    blob_store_url: Optional[str] = Field(None, description="Object storage endpoint for archives")
    blob_store_bucket: str = Field("investigations", description="Bucket receiving archives")
    blob_store_token: Optional[str] = Field(None, description="Bearer token for the object storage endpoint")

    # Harness
    test_examples_dir: Optional[str] = Field(None, description="Directory of example reports")

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "InvestigatorSettings":
        """Build settings from the process environment.

        Args:
            env_file: Optional explicit ``.env`` path (default: search upwards from cwd)

        Returns:
            Populated settings
        """
        if env_file:
            load_dotenv(env_file, override=False)
        else:
            load_dotenv(override=False)

        values = {
            "llm_provider": os.getenv("LLM_PROVIDER", "local").lower(),
            "ollama_base_url": os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"),
            "ollama_model": os.getenv("OLLAMA_MODEL", "qwen3"),
            "openai_api_key": os.getenv("OPENAI_API_KEY") or None,
            "openai_model": os.getenv("OPENAI_MODEL", "gpt-4o"),
            "openai_base_url": os.getenv("OPENAI_API_BASE", "https://api.openai.com/v1"),
            "llm_request_timeout": _env_float("LLM_REQUEST_TIMEOUT", 120.0),
            "temp_dir": os.getenv("TEMP_DIR", "./temp"),
            "open_source_project_url": os.getenv("OPEN_SOURCE_PROJECT_URL") or None,
            "test_timeout_seconds": _env_float("TEST_TIMEOUT_SECONDS", 60.0),
            "clone_timeout_seconds": _env_float("CLONE_TIMEOUT_SECONDS", 300.0),
            "maintainer_id": os.getenv("MAINTAINER_ID") or None,
            "store_backend": os.getenv("STORE_BACKEND", "memory").lower(),
            "blob_store_url": os.getenv("BLOB_STORE_URL") or None,
            "blob_store_bucket": os.getenv("BLOB_STORE_BUCKET", "investigations"),
            "blob_store_token": os.getenv("BLOB_STORE_TOKEN") or None,
            "test_examples_dir": os.getenv("TEST_EXAMPLES_DIR") or None,
        }

        test_command = os.getenv("TEST_COMMAND")
        if test_command:
            values["test_command"] = test_command.split()

        settings = cls(**values)
        logger.info(
            f"Settings loaded: provider={settings.llm_provider}, "
            f"store={settings.store_backend}, temp_dir={settings.temp_dir}, "
            f"test_timeout={settings.test_timeout_seconds}s"
        )
        return settings


# Singleton instance for global access
_settings_instance: Optional[InvestigatorSettings] = None


def get_settings() -> InvestigatorSettings:
    """Get or create the global settings instance."""
    global _settings_instance

    if _settings_instance is None:
        _settings_instance = InvestigatorSettings.from_env()

    return _settings_instance


def reset_settings():
    """Reset the global settings instance.

    Used for testing or reconfiguration.
    """
    global _settings_instance
    _settings_instance = None
    logger.debug("Settings instance reset")
