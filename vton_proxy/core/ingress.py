"""Thin ingress boundary helpers for the Azure Functions HTTP entrypoints.

Centralises the transport concerns so that ``function_app.py`` contains
only trigger bindings and handoff:

- **handle_generate** — method dispatch, configuration gate, rate
  limiting, multipart extraction, pipeline handoff, response shaping.
- **read_generation_request** — turns the multipart form into a
  validated ``GenerationRequest`` (missing fields, non-image content
  types, and per-file size limits).
- **health_response** — the liveness body; never includes credentials.

Every response carries the CORS headers, the security headers, and an
``X-Request-Id`` header with the request correlation id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

from vton_proxy.activities.classify_outcome import MSG_CONFIG, classify_exception
from vton_proxy.core import constants
from vton_proxy.core.exceptions import (
    BadRequestError,
    PayloadTooLargeError,
    ProxyError,
    RateLimitedError,
)
from vton_proxy.models.generation import ErrorKind, GenerationRequest
from vton_proxy.orchestrators.generation_pipeline import run_generation
from vton_proxy.utils.helpers import client_address, new_correlation_id

if TYPE_CHECKING:
    from collections.abc import Mapping

    from vton_proxy.core.config import ProxyConfig
    from vton_proxy.core.ratelimit import RateLimiter
    from vton_proxy.models.payloads import ErrorBody, HealthBody

logger = logging.getLogger("vton_proxy.core.ingress")

METHOD_NOT_ALLOWED = "method_not_allowed"


class InboundRequest(Protocol):
    """The subset of ``azure.functions.HttpRequest`` the ingress relies on."""

    @property
    def method(self) -> str: ...

    @property
    def headers(self) -> Mapping[str, str]: ...

    @property
    def form(self) -> Mapping[str, Any]: ...

    @property
    def files(self) -> Mapping[str, Any]: ...


@dataclass(frozen=True, slots=True)
class ProxyResponse:
    """Transport-neutral HTTP response produced by the ingress.

    Attributes:
        status_code: HTTP status code.
        body: JSON-serialisable body, or ``None`` for an empty response.
        headers: Response headers (CORS, security, request id).
    """

    status_code: int
    body: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)


def response_headers(request_id: str = "") -> dict[str, str]:
    """Return the headers attached to every response."""
    headers = {**constants.CORS_HEADERS, **constants.SECURITY_HEADERS}
    if request_id:
        headers[constants.REQUEST_ID_HEADER] = request_id
    return headers


# ---------------------------------------------------------------------------
# Multipart extraction
# ---------------------------------------------------------------------------


def read_generation_request(
    req: InboundRequest,
    *,
    max_file_bytes: int,
    default_swap_type: str = constants.DEFAULT_SWAP_TYPE,
) -> GenerationRequest:
    """Extract and validate the two images and the style selector.

    Raises:
        BadRequestError: If the body cannot be parsed, a file is missing
            or empty, or a declared content type is not ``image/*``.
        PayloadTooLargeError: If a file exceeds *max_file_bytes*.
    """
    try:
        files = req.files
        form = req.form
    except ValueError as exc:
        msg = f"Malformed multipart body: {exc}"
        raise BadRequestError(msg) from exc

    subject_file = files.get(constants.FIELD_USER_IMAGE)
    garment_file = files.get(constants.FIELD_CLOTHING_IMAGE)
    if subject_file is None or garment_file is None:
        msg = "Both user image and clothing image are required"
        raise BadRequestError(msg)

    subject_image, subject_type = _read_file(
        constants.FIELD_USER_IMAGE, subject_file, max_file_bytes
    )
    garment_image, garment_type = _read_file(
        constants.FIELD_CLOTHING_IMAGE, garment_file, max_file_bytes
    )

    swap_type = str(form.get(constants.FIELD_SWAP_TYPE) or "").strip() or default_swap_type

    return GenerationRequest(
        subject_image=subject_image,
        garment_image=garment_image,
        swap_type=swap_type,
        subject_content_type=subject_type,
        garment_content_type=garment_type,
    )


def _read_file(field_name: str, upload: Any, max_file_bytes: int) -> tuple[bytes, str]:
    """Read one uploaded file, enforcing the size limit and content type."""
    content_type = str(getattr(upload, "content_type", "") or "").split(";")[0].strip().lower()
    if content_type and not content_type.startswith("image/"):
        msg = f"{field_name} must be an image (got {content_type})"
        raise BadRequestError(msg)

    # At most one byte past the limit is buffered.
    data = upload.read(max_file_bytes + 1)
    if len(data) > max_file_bytes:
        raise PayloadTooLargeError(field_name, len(data), max_file_bytes)
    if not data:
        msg = f"{field_name} is empty"
        raise BadRequestError(msg)
    return data, content_type


# ---------------------------------------------------------------------------
# Endpoint handlers
# ---------------------------------------------------------------------------


async def handle_generate(
    req: InboundRequest,
    *,
    config: ProxyConfig,
    limiter: RateLimiter,
) -> ProxyResponse:
    """Handle one ``/api/generate`` call.

    Never raises; every path ends in a ``ProxyResponse``.
    """
    request_id = new_correlation_id("req")
    headers = response_headers(request_id)
    method = (req.method or "").upper()

    if method == "OPTIONS":
        return ProxyResponse(status_code=200, headers=headers)

    if method != "POST":
        body: ErrorBody = {
            "error": METHOD_NOT_ALLOWED,
            "message": "Method not allowed",
            "requestId": request_id,
        }
        return ProxyResponse(status_code=405, body=dict(body), headers=headers)

    if not config.is_backend_configured:
        logger.error(
            "Backend credentials missing | request=%s | keys=RUNPOD_API_KEY,RUNPOD_API_URL",
            request_id,
        )
        body = {
            "error": ErrorKind.INTERNAL_ERROR.value,
            "message": MSG_CONFIG,
            "requestId": request_id,
        }
        return ProxyResponse(
            status_code=ErrorKind.INTERNAL_ERROR.http_status,
            body=dict(body),
            headers=headers,
        )

    client = client_address(req.headers)
    try:
        if not limiter.check_and_increment(client):
            msg = f"Client {client} exceeded rate limit"
            raise RateLimitedError(msg, correlation_id=request_id)
        request = read_generation_request(
            req,
            max_file_bytes=config.max_file_bytes,
            default_swap_type=config.default_swap_type,
        )
    except ProxyError as exc:
        logger.warning(
            "Request rejected | request=%s | client=%s | error=%s",
            request_id,
            client,
            exc.to_error_dict(),
        )
        result = classify_exception(exc)
        return ProxyResponse(
            status_code=result.http_status,
            body=result.to_response_body(request_id=request_id, debug=config.debug_errors),
            headers=headers,
        )

    logger.info(
        "Generation request accepted | request=%s | client=%s | swap_type=%s"
        " | subject_bytes=%d | garment_bytes=%d",
        request_id,
        client,
        request.swap_type,
        len(request.subject_image),
        len(request.garment_image),
    )

    result = await run_generation(request, config=config, correlation_id=request_id)
    return ProxyResponse(
        status_code=result.http_status,
        body=result.to_response_body(request_id=request_id, debug=config.debug_errors),
        headers=headers,
    )


def health_response() -> ProxyResponse:
    """Return the ``/api/health`` response."""
    body: HealthBody = {
        "status": "ok",
        "service": constants.SERVICE_NAME,
        "timestamp": datetime.now(UTC).isoformat(),
        "secure": True,
    }
    return ProxyResponse(status_code=200, body=dict(body), headers=response_headers())
