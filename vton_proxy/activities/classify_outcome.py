"""Classify outcome activity — normalise every path into a ``GenerationResult``.

Callers only ever see a ``GenerationResult``. This module is the single
place that decides which ``ErrorKind``, HTTP status, and caller-facing
message a failure maps to. Internal detail (upstream bodies, exception
text) is kept in ``GenerationResult.detail`` and is only serialised in
debug mode.

Rule order (first match wins):

==========================  ======================  ======
Match                       ErrorKind               Status
==========================  ======================  ======
size limit                  PAYLOAD_TOO_LARGE       413
bad input / parse           BAD_REQUEST             400
rate limit                  RATE_LIMITED            429
upload stage                UPSTREAM_UNAVAILABLE    502
backend stage               UPSTREAM_UNAVAILABLE    502 (503 on capacity)
timeout                     DEADLINE_EXCEEDED       408
configuration / registry    INTERNAL_ERROR          500
model invariant             INTERNAL_ERROR          500
anything else               INTERNAL_ERROR          500
==========================  ======================  ======

Typed exceptions are matched by class first. Exceptions outside the
proxy taxonomy fall back to a keyword match over their text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from vton_proxy.activities.upload_images import UploadError
from vton_proxy.core.config import ConfigValidationError
from vton_proxy.core.exceptions import (
    BadRequestError,
    PayloadTooLargeError,
    RateLimitedError,
)
from vton_proxy.models.generation import (
    ErrorKind,
    GenerationResult,
    ImmediateResult,
    JobStarted,
    ModelValidationError,
    PollOutcome,
    PollTerminal,
    SubmitFailure,
    SubmitOutcome,
)
from vton_proxy.providers.base import BackendError, HostUploadError, ProviderError

logger = logging.getLogger("vton_proxy.activities.classify_outcome")

# ---------------------------------------------------------------------------
# Caller-facing messages
# ---------------------------------------------------------------------------

MSG_TOO_LARGE = "Image file too large. Please use smaller images."
MSG_BAD_REQUEST = "Error processing uploaded images. Please try uploading different images."
MSG_RATE_LIMITED = "Please wait before trying again"
MSG_UPLOAD_FAILED = "Error uploading images to processing service. Please try again."
MSG_BACKEND_UNAVAILABLE = (
    "AI generation service temporarily unavailable. Please try again in a few minutes."
)
MSG_BACKEND_BUSY = "AI generation service is busy. Please try again in a few minutes."
MSG_DEADLINE = "Processing took too long. Please try again with smaller images."
MSG_CONFIG = "Server configuration error"
MSG_INTERNAL = "An error occurred during processing. Please try again."

# HTTP status used when the backend signalled it is saturated.
CAPACITY_STATUS = 503


@dataclass(frozen=True, slots=True)
class _Rule:
    kind: ErrorKind
    message: str
    types: tuple[type[BaseException], ...]
    keywords: tuple[str, ...] = ()


_RULES: tuple[_Rule, ...] = (
    _Rule(
        ErrorKind.PAYLOAD_TOO_LARGE,
        MSG_TOO_LARGE,
        (PayloadTooLargeError,),
        ("too large", "file size", "size limit", "exceeds limit"),
    ),
    _Rule(
        ErrorKind.BAD_REQUEST,
        MSG_BAD_REQUEST,
        (BadRequestError,),
        ("parse", "multipart", "malformed", "invalid image"),
    ),
    _Rule(ErrorKind.RATE_LIMITED, MSG_RATE_LIMITED, (RateLimitedError,), ("rate limit",)),
    _Rule(
        ErrorKind.UPSTREAM_UNAVAILABLE,
        MSG_UPLOAD_FAILED,
        (UploadError, HostUploadError),
        ("upload", "imgbb", "imgur"),
    ),
    _Rule(
        ErrorKind.UPSTREAM_UNAVAILABLE,
        MSG_BACKEND_UNAVAILABLE,
        (BackendError,),
        ("runpod", "backend", "generation service"),
    ),
    _Rule(
        ErrorKind.DEADLINE_EXCEEDED,
        MSG_DEADLINE,
        (TimeoutError,),
        ("timeout", "timed out"),
    ),
    # Bare ProviderError comes from the factory (unregistered host name).
    _Rule(ErrorKind.INTERNAL_ERROR, MSG_CONFIG, (ConfigValidationError, ProviderError)),
    _Rule(ErrorKind.INTERNAL_ERROR, MSG_INTERNAL, (ModelValidationError,)),
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def success(image_url: str) -> GenerationResult:
    """Return the success result for a generated image."""
    return GenerationResult(success=True, image_url=image_url)


def failure(
    kind: ErrorKind,
    message: str,
    *,
    detail: str = "",
    http_status: int = 0,
) -> GenerationResult:
    """Return a failure result; *http_status* defaults to the kind's status."""
    return GenerationResult(
        success=False,
        error_kind=kind,
        message=message,
        http_status=http_status or kind.http_status,
        detail=detail,
    )


def classify_exception(exc: BaseException) -> GenerationResult:
    """Map an exception raised anywhere in the pipeline to a result."""
    detail = _detail_for(exc)

    for rule in _RULES:
        if isinstance(exc, rule.types):
            return _apply(rule, exc, detail)

    text = str(exc).lower()
    for rule in _RULES:
        if any(keyword in text for keyword in rule.keywords):
            logger.debug(
                "Classified untyped exception by keyword | type=%s | kind=%s",
                type(exc).__name__,
                rule.kind.value,
            )
            return failure(rule.kind, rule.message, detail=detail)

    return failure(ErrorKind.INTERNAL_ERROR, MSG_INTERNAL, detail=detail)


def from_submit_outcome(outcome: SubmitOutcome) -> GenerationResult:
    """Map a terminal submit outcome to a result.

    Raises:
        ValueError: If *outcome* is ``JobStarted``; the job must be polled.
    """
    if isinstance(outcome, ImmediateResult):
        return success(outcome.image_url)
    if isinstance(outcome, JobStarted):
        msg = f"Job {outcome.job.job_id} is still running and must be polled"
        raise ValueError(msg)

    detail = _submit_detail(outcome)
    if outcome.capacity:
        return failure(
            ErrorKind.UPSTREAM_UNAVAILABLE,
            MSG_BACKEND_BUSY,
            detail=detail,
            http_status=CAPACITY_STATUS,
        )
    return failure(ErrorKind.UPSTREAM_UNAVAILABLE, MSG_BACKEND_UNAVAILABLE, detail=detail)


def from_poll_outcome(outcome: PollOutcome) -> GenerationResult:
    """Map a terminal poll outcome to a result."""
    if outcome.state is PollTerminal.COMPLETED:
        return success(outcome.image_url)

    detail = f"job={outcome.job_id} attempts={outcome.attempts} {outcome.reason}".strip()
    if outcome.state is PollTerminal.TIMED_OUT:
        return failure(ErrorKind.DEADLINE_EXCEEDED, MSG_DEADLINE, detail=detail)
    return failure(ErrorKind.UPSTREAM_UNAVAILABLE, MSG_BACKEND_UNAVAILABLE, detail=detail)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _apply(rule: _Rule, exc: BaseException, detail: str) -> GenerationResult:
    if isinstance(exc, BadRequestError) and exc.message:
        # Ingress validation messages are written for the caller.
        return failure(rule.kind, exc.message, detail=detail)

    if isinstance(exc, BackendError) and _is_capacity(exc):
        return failure(rule.kind, MSG_BACKEND_BUSY, detail=detail, http_status=CAPACITY_STATUS)

    return failure(rule.kind, rule.message, detail=detail)


def _is_capacity(exc: BackendError) -> bool:
    return exc.status_code is None or exc.status_code in (429, CAPACITY_STATUS)


def _detail_for(exc: BaseException) -> str:
    text = str(exc) or type(exc).__name__
    if isinstance(exc, BackendError) and exc.body:
        return f"{text} | body={exc.body}"
    if isinstance(exc, UploadError) and exc.attempts:
        tried = "; ".join(f"{host}: {error}" for host, error in exc.attempts)
        return f"{text} | attempts={tried}"
    return f"{type(exc).__name__}: {text}"


def _submit_detail(outcome: SubmitFailure) -> str:
    parts = [outcome.reason]
    if outcome.status_code is not None:
        parts.append(f"status={outcome.status_code}")
    if outcome.detail and outcome.detail != outcome.reason:
        parts.append(f"body={outcome.detail}")
    return " | ".join(parts)
