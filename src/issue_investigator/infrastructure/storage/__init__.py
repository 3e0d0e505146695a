"""Blob storage for investigation archives."""

from .archive import build_directory_archive
from .blob_store import BlobStore, InMemoryBlobStore, StoredBlob, issue_archive_key

__all__ = [
    "BlobStore",
    "InMemoryBlobStore",
    "StoredBlob",
    "issue_archive_key",
    "build_directory_archive",
]
