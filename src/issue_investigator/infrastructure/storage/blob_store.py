"""Blob storage contract and an in-process implementation."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from issue_investigator.exceptions import BlobStorageError

logger = logging.getLogger(__name__)


def issue_archive_key(issue_id: int, name: str = "results.zip") -> str:
    """Key convention for everything uploaded on behalf of an issue."""
    return f"issues/issue-{issue_id}/{name}"


class BlobStore(ABC):
    @abstractmethod
    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``key`` and return a URL for it.

        Raises:
            BlobStorageError: If the object could not be stored
        """


@dataclass
class StoredBlob:
    key: str
    data: bytes
    content_type: str


class InMemoryBlobStore(BlobStore):
    """Keeps uploads in a dict. ``fail_with`` makes every upload raise."""

    def __init__(self, base_url: str = "memory://blobs", fail_with: Optional[str] = None):
        self.base_url = base_url.rstrip("/")
        self.fail_with = fail_with
        self.blobs: Dict[str, StoredBlob] = {}

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        if self.fail_with:
            raise BlobStorageError(self.fail_with, context={"key": key})
        self.blobs[key] = StoredBlob(key=key, data=data, content_type=content_type)
        logger.debug(f"Stored {len(data)} bytes at {key}")
        return f"{self.base_url}/{key}"

    @property
    def keys(self) -> List[str]:
        return list(self.blobs.keys())
