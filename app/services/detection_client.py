"""
Client for the external object-detection service.

Provides a shared httpx.AsyncClient with connection pooling, started and
stopped with the application, and the calls this application makes to the
inference service.
"""

from typing import AsyncIterator, Dict, Optional

import httpx

from app.config import settings
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

# Headers that describe a single connection and must not be relayed
HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "trailers",
    "transfer-encoding",
    "upgrade",
})


class DetectionClientManager:
    """Owns the pooled httpx.AsyncClient used to reach the inference service.

    Usage:
        # In FastAPI lifespan
        await detection_client_manager.startup()
        yield
        await detection_client_manager.shutdown()
    """

    def __init__(
        self,
        *,
        base_url: str,
        max_connections: int = 100,
        connect_timeout: float = 10.0,
        read_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url
        self._max_connections = max_connections
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the shared HTTP client.

        Raises:
            RuntimeError: If client is not initialized (call startup first)
        """
        if self._client is None:
            raise RuntimeError("Detection client not initialized. Call startup() first.")
        return self._client

    async def startup(self) -> None:
        """Create the HTTP client."""
        if self._client is not None:
            logger.warning("Detection client already started")
            return

        limits = httpx.Limits(max_connections=self._max_connections)
        timeout = httpx.Timeout(
            connect=self._connect_timeout,
            read=self._read_timeout,
            write=None,  # uploads are streamed from the inbound request
            pool=self._connect_timeout,
        )
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            limits=limits,
            timeout=timeout,
            transport=self._transport,
        )
        logger.info(f"Detection client started: base_url={self._base_url}")

    async def shutdown(self) -> None:
        """Close the HTTP client and release pooled connections."""
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None
        logger.info("Detection client shut down")


# Global instance
detection_client_manager = DetectionClientManager(
    base_url=settings.DETECTION_API_URL,
    max_connections=settings.DETECTION_API_MAX_CONNECTIONS,
    connect_timeout=settings.DETECTION_API_CONNECT_TIMEOUT,
    read_timeout=settings.DETECTION_API_READ_TIMEOUT,
)


def get_detection_client() -> httpx.AsyncClient:
    """Dependency returning the shared detection client."""
    return detection_client_manager.client


def relay_headers(headers: httpx.Headers) -> Dict[str, str]:
    """Copy upstream response headers for relaying, dropping hop-by-hop ones."""
    return {name: value for name, value in headers.items() if name.lower() not in HOP_BY_HOP_HEADERS}


async def forward_detection(
    client: httpx.AsyncClient,
    *,
    api_key: str,
    content_type: str,
    body: AsyncIterator[bytes],
    content_length: Optional[str] = None,
) -> httpx.Response:
    """
    Send an upload to the inference service's /detect endpoint.

    The body is streamed through as it arrives; the response is returned
    unread so the caller can relay it chunk by chunk. The caller must close
    the returned response.

    Args:
        client: Detection HTTP client
        api_key: Caller's API key, forwarded as X-API-Key
        content_type: Inbound Content-Type (multipart boundary included)
        body: Inbound request body stream
        content_length: Inbound Content-Length, if the client sent one

    Returns:
        Streaming upstream response

    Raises:
        httpx.HTTPError: If the inference service cannot be reached
    """
    headers = {
        "X-API-Key": api_key,
        "Content-Type": content_type,
    }
    if content_length:
        headers["Content-Length"] = content_length

    request = client.build_request("POST", "/detect", headers=headers, content=body)
    response = await client.send(request, stream=True)
    logger.info(f"Detection upstream responded: status={response.status_code}")
    return response


async def fetch_usage_stats(client: httpx.AsyncClient, *, api_key: str) -> httpx.Response:
    """
    Fetch usage statistics for an API key from the inference service.

    Args:
        client: Detection HTTP client
        api_key: Key whose usage is requested

    Returns:
        Fully read upstream response

    Raises:
        httpx.HTTPError: If the inference service cannot be reached
    """
    return await client.get("/users/me/stats", headers={"X-API-Key": api_key})
