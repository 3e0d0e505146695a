"""HTTP client for an S3-compatible object storage endpoint."""

import logging
from typing import Optional

import httpx

from issue_investigator.clients.base import BaseServiceClient
from issue_investigator.exceptions import BlobStorageError
from issue_investigator.infrastructure.storage import BlobStore

logger = logging.getLogger(__name__)


class HttpBlobStore(BaseServiceClient, BlobStore):
    """Uploads objects with ``PUT {base_url}/{bucket}/{key}``.

    Works with any endpoint that accepts path-style object PUTs (MinIO,
    pre-authorised gateways, plain WebDAV-style servers).

    Usage:
        store = HttpBlobStore(base_url="http://minio:9000", bucket="investigations")
        url = await store.upload("issues/issue-7/results.zip", data, "application/zip")
    """

    def __init__(
        self,
        base_url: str,
        bucket: str,
        token: Optional[str] = None,
        timeout: float = 60.0,
    ):
        super().__init__(base_url=base_url, timeout=timeout, token=token)
        self.bucket = bucket.strip("/")

    def object_url(self, key: str) -> str:
        return f"{self.base_url}/{self.bucket}/{key.lstrip('/')}"

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        """Upload one object.

        Args:
            key: Object key, e.g. ``issues/issue-7/results.zip``
            data: Object body
            content_type: MIME type stored with the object

        Returns:
            URL of the stored object

        Raises:
            BlobStorageError: On transport errors or non-2xx responses
        """
        url = self.object_url(key)
        try:
            async with self._get_client() as client:
                response = await client.put(
                    url,
                    content=data,
                    headers=self._headers(content_type=content_type),
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise BlobStorageError(f"Upload of {key} failed: {e}", context={"url": url})

        logger.info(f"Uploaded {len(data)} bytes to {url}")
        return url
