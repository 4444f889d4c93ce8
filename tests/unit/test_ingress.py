"""Tests for the ingress boundary helpers.

Validates:
- ``read_generation_request`` extracts both images, enforces the size
  limit and content types, and defaults ``swapType``
- ``handle_generate`` answers preflight, rejects other methods, gates on
  configuration and rate limits, and shapes pipeline results
- ``health_response`` never leaks credentials
- Every response carries CORS, security, and request id headers
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock, patch

import azure.functions as func
import httpx
import pytest

from vton_proxy.activities.classify_outcome import (
    MSG_BACKEND_BUSY,
    MSG_CONFIG,
    MSG_RATE_LIMITED,
    failure,
    success,
)
from vton_proxy.core.config import ProxyConfig
from vton_proxy.core.exceptions import BadRequestError, PayloadTooLargeError
from vton_proxy.core.ingress import (
    METHOD_NOT_ALLOWED,
    handle_generate,
    health_response,
    read_generation_request,
    response_headers,
)
from vton_proxy.core.ratelimit import InMemoryRateLimiter
from vton_proxy.models.generation import ErrorKind

RESULT_URL = "https://cdn.runpod.example/result.jpg"
PIPELINE = "vton_proxy.core.ingress.run_generation"


class _Upload:
    """Minimal stand-in for a werkzeug ``FileStorage``."""

    def __init__(self, data: bytes, content_type: str = "image/jpeg") -> None:
        self.content_type = content_type
        self._stream = io.BytesIO(data)

    def read(self, size: int = -1) -> bytes:
        return self._stream.read(size)


@dataclass
class _Request:
    method: str = "POST"
    headers: dict[str, str] = field(default_factory=lambda: {"X-Forwarded-For": "203.0.113.7"})
    form: dict[str, str] = field(default_factory=dict)
    files: dict[str, Any] = field(default_factory=dict)


class _BrokenBodyRequest:
    """Request whose multipart body cannot be parsed."""

    method = "POST"
    headers: dict[str, str] = {}
    form: dict[str, str] = {}

    @property
    def files(self) -> dict[str, Any]:
        raise ValueError("missing boundary")


def _upload_request(
    subject: bytes | None = b"person-bytes",
    garment: bytes | None = b"shirt-bytes",
    *,
    swap_type: str | None = None,
    method: str = "POST",
    client: str = "203.0.113.7",
) -> _Request:
    files: dict[str, Any] = {}
    if subject is not None:
        files["userImage"] = _Upload(subject)
    if garment is not None:
        files["clothingImage"] = _Upload(garment)
    form = {"swapType": swap_type} if swap_type is not None else {}
    return _Request(
        method=method,
        headers={"X-Forwarded-For": client},
        form=form,
        files=files,
    )


@pytest.fixture()
def limiter() -> InMemoryRateLimiter:
    return InMemoryRateLimiter(5, 60.0)


# ---------------------------------------------------------------------------
# read_generation_request
# ---------------------------------------------------------------------------


class TestReadGenerationRequest:
    """Multipart form → validated GenerationRequest."""

    def test_both_files_and_swap_type(self) -> None:
        req = _upload_request(swap_type="Dresses")
        request = read_generation_request(req, max_file_bytes=1024)
        assert request.subject_image == b"person-bytes"
        assert request.garment_image == b"shirt-bytes"
        assert request.swap_type == "Dresses"
        assert request.subject_content_type == "image/jpeg"

    @pytest.mark.parametrize("swap_type", [None, "", "   "])
    def test_swap_type_defaults(self, swap_type: str | None) -> None:
        req = _upload_request(swap_type=swap_type)
        request = read_generation_request(req, max_file_bytes=1024)
        assert request.swap_type == "Auto"

    def test_configured_default_swap_type(self) -> None:
        request = read_generation_request(
            _upload_request(), max_file_bytes=1024, default_swap_type="Upper-body"
        )
        assert request.swap_type == "Upper-body"

    @pytest.mark.parametrize(
        ("subject", "garment"),
        [(None, b"shirt"), (b"person", None), (None, None)],
    )
    def test_missing_file(self, subject: bytes | None, garment: bytes | None) -> None:
        with pytest.raises(BadRequestError, match="Both user image and clothing image"):
            read_generation_request(_upload_request(subject, garment), max_file_bytes=1024)

    def test_empty_file(self) -> None:
        with pytest.raises(BadRequestError, match="userImage is empty"):
            read_generation_request(_upload_request(b""), max_file_bytes=1024)

    def test_file_at_limit_accepted(self) -> None:
        request = read_generation_request(_upload_request(b"x" * 16), max_file_bytes=16)
        assert len(request.subject_image) == 16

    def test_file_over_limit(self) -> None:
        with pytest.raises(PayloadTooLargeError) as exc_info:
            read_generation_request(_upload_request(garment=b"x" * 17), max_file_bytes=16)
        assert exc_info.value.field_name == "clothingImage"
        assert exc_info.value.limit_bytes == 16

    def test_over_limit_reads_at_most_one_extra_byte(self) -> None:
        upload = _Upload(b"x" * 1000)
        req = _Request(files={"userImage": upload, "clothingImage": _Upload(b"y")})
        with pytest.raises(PayloadTooLargeError) as exc_info:
            read_generation_request(req, max_file_bytes=10)
        assert exc_info.value.size_bytes == 11

    def test_non_image_content_type(self) -> None:
        req = _upload_request()
        req.files["clothingImage"] = _Upload(b"%PDF-1.7", content_type="application/pdf")
        with pytest.raises(BadRequestError, match="clothingImage must be an image"):
            read_generation_request(req, max_file_bytes=1024)

    def test_missing_content_type_tolerated(self) -> None:
        req = _upload_request()
        req.files["userImage"] = _Upload(b"person", content_type="")
        request = read_generation_request(req, max_file_bytes=1024)
        assert request.subject_content_type == ""

    def test_malformed_body(self) -> None:
        with pytest.raises(BadRequestError, match="Malformed multipart body"):
            read_generation_request(_BrokenBodyRequest(), max_file_bytes=1024)


class TestReadFromAzureRequest:
    """A real multipart body parsed by ``azure.functions.HttpRequest``."""

    @staticmethod
    def _azure_request(**files: tuple[str, bytes, str]) -> func.HttpRequest:
        encoded = httpx.Request(
            "POST",
            "http://localhost/api/generate",
            files=files,
            data={"swapType": "Lower-body"},
        )
        return func.HttpRequest(
            method="POST",
            url="http://localhost/api/generate",
            headers={"Content-Type": encoded.headers["Content-Type"]},
            body=encoded.read(),
        )

    def test_multipart_round_trip(self, jpeg_bytes: bytes) -> None:
        req = self._azure_request(
            userImage=("me.jpg", jpeg_bytes, "image/jpeg"),
            clothingImage=("shirt.png", b"\x89PNG-data", "image/png"),
        )

        request = read_generation_request(req, max_file_bytes=1024)

        assert request.subject_image == jpeg_bytes
        assert request.garment_image == b"\x89PNG-data"
        assert request.garment_content_type == "image/png"
        assert request.swap_type == "Lower-body"

    def test_multipart_missing_field(self, jpeg_bytes: bytes) -> None:
        req = self._azure_request(userImage=("me.jpg", jpeg_bytes, "image/jpeg"))
        with pytest.raises(BadRequestError):
            read_generation_request(req, max_file_bytes=1024)


# ---------------------------------------------------------------------------
# handle_generate
# ---------------------------------------------------------------------------


class TestHandleGenerateGates:
    """Responses produced before the pipeline runs."""

    @pytest.mark.asyncio()
    async def test_preflight(self, proxy_config: ProxyConfig, limiter) -> None:
        response = await handle_generate(
            _Request(method="OPTIONS"), config=proxy_config, limiter=limiter
        )
        assert response.status_code == 200
        assert response.body is None
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert response.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"

    @pytest.mark.asyncio()
    @pytest.mark.parametrize("method", ["GET", "HEAD", "PUT", "PATCH", "DELETE"])
    async def test_method_not_allowed(
        self, method: str, proxy_config: ProxyConfig, limiter
    ) -> None:
        response = await handle_generate(
            _Request(method=method), config=proxy_config, limiter=limiter
        )
        assert response.status_code == 405
        assert response.body is not None
        assert response.body["error"] == METHOD_NOT_ALLOWED
        assert response.body["requestId"] == response.headers["X-Request-Id"]

    @pytest.mark.asyncio()
    async def test_unconfigured_backend(self, limiter) -> None:
        with patch(PIPELINE, new_callable=AsyncMock) as pipeline:
            response = await handle_generate(
                _upload_request(), config=ProxyConfig(), limiter=limiter
            )

        assert response.status_code == 500
        assert response.body is not None
        assert response.body["error"] == "internal_error"
        assert response.body["message"] == MSG_CONFIG
        pipeline.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_missing_file_is_400(self, proxy_config: ProxyConfig, limiter) -> None:
        with patch(PIPELINE, new_callable=AsyncMock) as pipeline:
            response = await handle_generate(
                _upload_request(garment=None), config=proxy_config, limiter=limiter
            )

        assert response.status_code == 400
        assert response.body == {
            "error": "bad_request",
            "message": "Both user image and clothing image are required",
            "requestId": response.headers["X-Request-Id"],
        }
        pipeline.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_non_image_is_400(self, proxy_config: ProxyConfig, limiter) -> None:
        req = _upload_request()
        req.files["userImage"] = _Upload(b"text", content_type="text/plain")

        response = await handle_generate(req, config=proxy_config, limiter=limiter)

        assert response.status_code == 400
        assert response.body is not None
        assert response.body["message"] == "userImage must be an image (got text/plain)"

    @pytest.mark.asyncio()
    async def test_oversize_is_413(self, limiter) -> None:
        config = ProxyConfig(runpod_api_key="k", runpod_api_url="https://x/run", max_file_bytes=8)

        response = await handle_generate(
            _upload_request(b"x" * 9), config=config, limiter=limiter
        )

        assert response.status_code == 413
        assert response.body is not None
        assert response.body["error"] == "payload_too_large"

    @pytest.mark.asyncio()
    async def test_rate_limited_on_sixth_request(
        self, proxy_config: ProxyConfig, limiter
    ) -> None:
        with patch(PIPELINE, new=AsyncMock(return_value=success(RESULT_URL))) as pipeline:
            responses = [
                await handle_generate(_upload_request(), config=proxy_config, limiter=limiter)
                for _ in range(6)
            ]

        assert [r.status_code for r in responses] == [200] * 5 + [429]
        assert responses[-1].body is not None
        assert responses[-1].body["error"] == "rate_limited"
        assert responses[-1].body["message"] == MSG_RATE_LIMITED
        assert pipeline.await_count == 5

    @pytest.mark.asyncio()
    async def test_rate_limit_is_per_client(self, proxy_config: ProxyConfig, limiter) -> None:
        with patch(PIPELINE, new=AsyncMock(return_value=success(RESULT_URL))):
            for _ in range(5):
                await handle_generate(
                    _upload_request(client="198.51.100.1"), config=proxy_config, limiter=limiter
                )
            response = await handle_generate(
                _upload_request(client="198.51.100.2"), config=proxy_config, limiter=limiter
            )
        assert response.status_code == 200

    @pytest.mark.asyncio()
    async def test_details_only_in_debug(self, limiter) -> None:
        config = ProxyConfig(
            runpod_api_key="k", runpod_api_url="https://x/run", debug_errors=True
        )
        response = await handle_generate(
            _upload_request(subject=None), config=config, limiter=limiter
        )
        assert response.body is not None
        assert "BadRequestError" in response.body["details"]


class TestHandleGeneratePipeline:
    """Pipeline handoff and result shaping."""

    @pytest.mark.asyncio()
    async def test_success(self, proxy_config: ProxyConfig, limiter) -> None:
        with patch(PIPELINE, new=AsyncMock(return_value=success(RESULT_URL))) as pipeline:
            response = await handle_generate(
                _upload_request(), config=proxy_config, limiter=limiter
            )

        assert response.status_code == 200
        assert response.body == {"success": True, "imageUrl": RESULT_URL}
        request = pipeline.await_args.args[0]
        assert request.swap_type == "Auto"
        assert pipeline.await_args.kwargs["correlation_id"] == response.headers["X-Request-Id"]

    @pytest.mark.asyncio()
    async def test_failure_result_shaped(self, proxy_config: ProxyConfig, limiter) -> None:
        result = failure(
            ErrorKind.UPSTREAM_UNAVAILABLE,
            MSG_BACKEND_BUSY,
            detail="Submit failed: 503 | body=no workers",
            http_status=503,
        )
        with patch(PIPELINE, new=AsyncMock(return_value=result)):
            response = await handle_generate(
                _upload_request(), config=proxy_config, limiter=limiter
            )

        assert response.status_code == 503
        assert response.body is not None
        assert response.body["error"] == "upstream_unavailable"
        assert response.body["message"] == MSG_BACKEND_BUSY
        assert "details" not in response.body

    @pytest.mark.asyncio()
    async def test_security_headers_present(self, proxy_config: ProxyConfig, limiter) -> None:
        with patch(PIPELINE, new=AsyncMock(return_value=success(RESULT_URL))):
            response = await handle_generate(
                _upload_request(), config=proxy_config, limiter=limiter
            )
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Request-Id"].startswith("req-")


# ---------------------------------------------------------------------------
# Health and headers
# ---------------------------------------------------------------------------


class TestHealthResponse:
    def test_body(self) -> None:
        response = health_response()
        assert response.status_code == 200
        assert response.body is not None
        assert response.body["status"] == "ok"
        assert response.body["secure"] is True
        assert datetime.fromisoformat(response.body["timestamp"]).tzinfo is not None

    def test_no_credentials(self, proxy_config: ProxyConfig) -> None:
        text = str(health_response().body)
        assert proxy_config.runpod_api_key not in text
        assert proxy_config.imgbb_api_key not in text
        assert "runpod.ai" not in text


class TestResponseHeaders:
    def test_request_id_included_when_given(self) -> None:
        assert response_headers("req-1")["X-Request-Id"] == "req-1"

    def test_request_id_omitted_when_blank(self) -> None:
        assert "X-Request-Id" not in response_headers()
