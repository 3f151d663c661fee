"""
Detection proxy router.

Relays image uploads to the external inference service. This application
does not inspect images or validate API keys; the inference service does.
"""

from typing import AsyncIterator

import anyio
import httpx
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from starlette.requests import ClientDisconnect

from app.core.exceptions import ProxyError
from app.services.detection_client import forward_detection, get_detection_client, relay_headers
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(
    tags=["detection"],
    responses={
        400: {"description": "Content-Type header missing"},
        401: {"description": "X-API-Key header missing"},
        500: {"description": "Inference service unreachable"},
    },
)

# nginx's "client closed request"
CLIENT_CLOSED_REQUEST = 499


async def _upload(request: Request, uploaded: anyio.Event) -> AsyncIterator[bytes]:
    """Inbound body, passed through chunk by chunk; flags the end of the upload."""
    async for chunk in request.stream():
        yield chunk
    uploaded.set()


async def _wait_for_disconnect(request: Request, uploaded: anyio.Event, scope: anyio.CancelScope) -> None:
    # Only listen once the body is consumed, so no body message is taken here
    await uploaded.wait()
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            logger.info("Client disconnected while awaiting inference; upstream request cancelled")
            scope.cancel()
            return


@router.post("/detect")
async def detect(
    request: Request,
    client: httpx.AsyncClient = Depends(get_detection_client),
):
    """
    Forward a multipart image upload to the inference service's /detect.

    The request body is streamed upstream without being buffered, and the
    upstream status, headers and body (annotated image or JSON) are relayed
    back verbatim. If the client goes away before upstream answers, during
    the upload or while inference runs, the upstream request is cancelled.

    Raises:
        ProxyError: 401 without X-API-Key, 400 without Content-Type (neither
            contacts upstream), 500 if the inference service is unreachable
    """
    api_key = request.headers.get("x-api-key")
    content_type = request.headers.get("content-type")

    if not api_key:
        raise ProxyError("Proxy error: API key is missing from original request", status_code=401)
    if not content_type:
        raise ProxyError("Proxy error: Content-Type header is missing", status_code=400)

    uploaded = anyio.Event()
    upstream = None
    failure = None

    async with anyio.create_task_group() as tg:
        tg.start_soon(_wait_for_disconnect, request, uploaded, tg.cancel_scope)
        try:
            upstream = await forward_detection(
                client,
                api_key=api_key,
                content_type=content_type,
                content_length=request.headers.get("content-length"),
                body=_upload(request, uploaded),
            )
        except (ClientDisconnect, httpx.HTTPError) as exc:
            failure = exc
        tg.cancel_scope.cancel()

    if isinstance(failure, ClientDisconnect):
        logger.info("Client disconnected during upload; upstream request cancelled")
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    if failure is not None:
        logger.error(f"Error in detection proxy: {failure.__class__.__name__}: {failure}")
        raise ProxyError("An unexpected error occurred in the proxy.", status_code=500)
    if upstream is None:
        # Cancelled by the disconnect watcher
        return Response(status_code=CLIENT_CLOSED_REQUEST)

    if upstream.is_error:
        logger.warning(f"Detection upstream error relayed: status={upstream.status_code}")

    return StreamingResponse(
        upstream.aiter_raw(),
        status_code=upstream.status_code,
        headers=relay_headers(upstream.headers),
        background=BackgroundTask(upstream.aclose),
    )
