"""
Tests for the detection proxy.

The inference service is replaced by an httpx.MockTransport, so these tests
check exactly what gets forwarded and what gets relayed back.
"""

import anyio
import httpx
import pytest

from app.main import app

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.mark.asyncio
async def test_missing_api_key_rejected_without_upstream_call(client, detector):
    response = await client.post(
        "/api/detect",
        files={"image": ("cat.png", PNG_BYTES, "image/png")},
    )
    assert response.status_code == 401
    assert response.json() == {"detail": "Proxy error: API key is missing from original request"}
    assert detector.requests == []


@pytest.mark.asyncio
async def test_missing_content_type_rejected_without_upstream_call(client, detector):
    response = await client.post(
        "/api/detect",
        headers={"X-API-Key": "abc"},
    )
    assert response.status_code == 400
    assert response.json() == {"detail": "Proxy error: Content-Type header is missing"}
    assert detector.requests == []


@pytest.mark.asyncio
async def test_upload_forwarded_and_image_relayed(client, detector):
    annotated = b"\xff\xd8\xff\xe0annotated-jpeg"
    detector.handler = lambda request: httpx.Response(
        200,
        content=annotated,
        headers={"Content-Type": "image/jpeg", "X-Detections": "3"},
    )

    response = await client.post(
        "/api/detect",
        headers={"X-API-Key": "secret-key"},
        files={"image": ("cat.png", PNG_BYTES, "image/png")},
        data={"confidence": "0.5"},
    )

    assert response.status_code == 200
    assert response.content == annotated
    assert response.headers["content-type"] == "image/jpeg"
    assert response.headers["x-detections"] == "3"

    assert len(detector.requests) == 1
    sent = detector.requests[0]
    assert sent.method == "POST"
    assert str(sent.url) == "http://detector.test/detect"
    assert sent.headers["x-api-key"] == "secret-key"
    assert sent.headers["content-type"].startswith("multipart/form-data; boundary=")

    body = detector.bodies[0]
    assert PNG_BYTES in body
    assert b'name="confidence"' in body


@pytest.mark.asyncio
async def test_json_result_relayed(client, detector):
    detector.handler = lambda request: httpx.Response(
        200, json={"detections": [{"label": "cat", "confidence": 0.91}]}
    )

    response = await client.post(
        "/api/detect",
        headers={"X-API-Key": "secret-key"},
        files={"image": ("cat.png", PNG_BYTES, "image/png")},
    )
    assert response.status_code == 200
    assert response.json() == {"detections": [{"label": "cat", "confidence": 0.91}]}


@pytest.mark.asyncio
async def test_upstream_error_status_relayed(client, detector):
    detector.handler = lambda request: httpx.Response(401, json={"detail": "Invalid API key"})

    response = await client.post(
        "/api/detect",
        headers={"X-API-Key": "revoked"},
        files={"image": ("cat.png", PNG_BYTES, "image/png")},
    )
    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid API key"}


@pytest.mark.asyncio
async def test_upstream_unreachable(client, detector):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    detector.handler = refuse

    response = await client.post(
        "/api/detect",
        headers={"X-API-Key": "secret-key"},
        files={"image": ("cat.png", PNG_BYTES, "image/png")},
    )
    assert response.status_code == 500
    assert response.json() == {"detail": "An unexpected error occurred in the proxy."}


@pytest.mark.asyncio
async def test_detect_needs_no_session(client, detector):
    """The proxy authenticates by API key only; no dashboard session is involved."""
    response = await client.post(
        "/api/detect",
        headers={"X-API-Key": "secret-key", "Content-Type": "application/octet-stream"},
        content=PNG_BYTES,
    )
    assert response.status_code == 200
    assert detector.bodies[0] == PNG_BYTES


def _asgi_scope(body_length: int) -> dict:
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": "/api/detect",
        "raw_path": b"/api/detect",
        "root_path": "",
        "query_string": b"",
        "headers": [
            (b"host", b"testserver"),
            (b"x-api-key", b"secret-key"),
            (b"content-type", b"application/octet-stream"),
            (b"content-length", str(body_length).encode()),
        ],
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }


async def _call_with_disconnect(messages, disconnect_after=0.0):
    """Drive the app directly over ASGI; the client leaves once `messages` run out."""
    pending = list(messages)
    statuses = []

    async def receive():
        if pending:
            return pending.pop(0)
        await anyio.sleep(disconnect_after)
        return {"type": "http.disconnect"}

    async def send(message):
        if message["type"] == "http.response.start":
            statuses.append(message["status"])

    await app(_asgi_scope(len(PNG_BYTES)), receive, send)
    return statuses


@pytest.mark.asyncio
async def test_disconnect_during_upload_abandons_upstream(client, detector):
    statuses = await _call_with_disconnect(
        [{"type": "http.request", "body": PNG_BYTES[:8], "more_body": True}]
    )

    assert statuses == [499]
    assert detector.requests == []
    assert detector.completed == 0


@pytest.mark.asyncio
async def test_disconnect_during_inference_cancels_upstream(client, detector):
    """A client leaving while the model runs must not keep the upstream call alive."""
    detector.delay = 5.0

    with anyio.fail_after(3):
        statuses = await _call_with_disconnect(
            [{"type": "http.request", "body": PNG_BYTES, "more_body": False}],
            disconnect_after=0.1,
        )

    assert len(detector.requests) == 1
    assert detector.bodies[0] == PNG_BYTES
    assert detector.completed == 0
    assert 200 not in statuses


@pytest.mark.asyncio
async def test_large_body_relayed_in_chunks(client, detector):
    """Upstream bodies arrive as a stream and are relayed without being read first."""
    payload = bytes(range(256)) * 64
    detector.handler = lambda request: httpx.Response(
        200, content=payload, headers={"Content-Type": "image/png"}
    )

    response = await client.post(
        "/api/detect",
        headers={"X-API-Key": "secret-key"},
        files={"image": ("cat.png", PNG_BYTES, "image/png")},
    )
    assert response.status_code == 200
    assert response.content == payload
    assert response.headers["content-length"] == str(len(payload))
