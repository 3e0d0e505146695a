"""Base HTTP client for external collaborator services."""

import logging
from typing import Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class BaseServiceClient:
    """Base class for async HTTP clients of collaborator services.

    Usage:
        class ArchiveClient(BaseServiceClient):
            async def put(self, path: str, data: bytes) -> None:
                async with self._get_client() as client:
                    response = await client.put(
                        f"{self.base_url}/{path}",
                        content=data,
                        headers=self._headers(),
                    )
                    response.raise_for_status()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        token: Optional[str] = None,
    ):
        """Initialize service client.

        Args:
            base_url: Service base URL
            timeout: Request timeout in seconds (default: 30.0)
            token: Optional bearer token sent with every request
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.token = token

        logger.info(f"Initialized {self.__class__.__name__} with base_url={self.base_url}")

    def _headers(
        self,
        content_type: str = "application/json",
        correlation_id: Optional[str] = None,
    ) -> Dict[str, str]:
        """Build request headers.

        Args:
            content_type: Content-Type of the request body
            correlation_id: Optional correlation ID for request tracing

        Returns:
            Headers dict
        """
        headers = {"Content-Type": content_type}

        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id

        return headers

    def _get_client(self) -> httpx.AsyncClient:
        """Get HTTP client instance with configured timeout.

        Returns:
            Configured AsyncClient ready for use with async context manager
        """
        return httpx.AsyncClient(timeout=self.timeout)

    async def close(self):
        """Close any persistent connections.

        Override this if your client maintains a persistent httpx.AsyncClient.
        """
        pass
