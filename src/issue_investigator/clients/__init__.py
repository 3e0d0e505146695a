"""HTTP clients for collaborator services."""

from issue_investigator.clients.base import BaseServiceClient
from issue_investigator.clients.blob_storage_client import HttpBlobStore

__all__ = [
    "BaseServiceClient",
    "HttpBlobStore",
]
