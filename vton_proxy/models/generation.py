"""Typed models for the generation job lifecycle.

Defines the data structures exchanged between the ingress, the image
hosts, the generation backend, and the outcome classifier:

- ``GenerationRequest``: The two images and style selector of one call
- ``UploadedAsset``: A publicly fetchable URL for one staged image
- ``GenerationJob``: An in-flight backend job tracked by the poll loop
- ``PollState``: Mutable backoff bookkeeping owned by the poll loop
- ``ImmediateResult`` / ``JobStarted`` / ``SubmitFailure``: Submit outcomes
- ``PollOutcome``: Terminal result of the poll loop
- ``GenerationResult``: The single caller-facing result contract

Design notes:
- Models are frozen dataclasses (``PollState`` is the one mutable model
  and never leaves the poll loop).
- No magic strings — statuses and error kinds are enums.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from vton_proxy.core import constants
from vton_proxy.core.exceptions import ContractError

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ModelValidationError(ValueError, ContractError):
    """Raised when a domain model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_stage = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        formatted = f"{model}.{field_name}={value!r}: {message}"
        ContractError.__init__(self, formatted)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class HostRole(enum.Enum):
    """Position of the image host that served an upload."""

    PRIMARY = "primary"
    FALLBACK = "fallback"


class JobStatus(enum.Enum):
    """Lifecycle status reported by the generation backend.

    ``UNKNOWN`` covers any status string the backend may add later;
    the poll loop treats it as non-terminal.
    """

    COMPLETED = constants.STATUS_COMPLETED
    IN_PROGRESS = constants.STATUS_IN_PROGRESS
    IN_QUEUE = constants.STATUS_IN_QUEUE
    FAILED = constants.STATUS_FAILED
    CANCELLED = constants.STATUS_CANCELLED
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw: object) -> JobStatus:
        """Map a raw backend status string onto a ``JobStatus``."""
        text = str(raw or "").strip().upper()
        for member in cls:
            if member.value == text:
                return member
        return cls.UNKNOWN

    @property
    def is_running(self) -> bool:
        return self in (JobStatus.IN_PROGRESS, JobStatus.IN_QUEUE)


class PollTerminal(enum.Enum):
    """Terminal states of the poll loop."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


class ErrorKind(enum.Enum):
    """Caller-facing error categories with their default HTTP status."""

    BAD_REQUEST = "bad_request"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    INTERNAL_ERROR = "internal_error"

    @property
    def http_status(self) -> int:
        return _KIND_STATUS[self]


_KIND_STATUS: dict[ErrorKind, int] = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.PAYLOAD_TOO_LARGE: 413,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.UPSTREAM_UNAVAILABLE: 502,
    ErrorKind.DEADLINE_EXCEEDED: 408,
    ErrorKind.INTERNAL_ERROR: 500,
}


# ---------------------------------------------------------------------------
# Request and upload models
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    """One inbound try-on request.

    Attributes:
        subject_image: Raw bytes of the person photo.
        garment_image: Raw bytes of the clothing photo.
        swap_type: Style selector forwarded to the backend.
        subject_content_type: Declared MIME type of the person photo.
        garment_content_type: Declared MIME type of the clothing photo.
    """

    subject_image: bytes
    garment_image: bytes
    swap_type: str = constants.DEFAULT_SWAP_TYPE
    subject_content_type: str = ""
    garment_content_type: str = ""

    def __post_init__(self) -> None:
        _check_non_empty_bytes("GenerationRequest", "subject_image", self.subject_image)
        _check_non_empty_bytes("GenerationRequest", "garment_image", self.garment_image)
        _check_non_empty("GenerationRequest", "swap_type", self.swap_type)


@dataclass(frozen=True, slots=True)
class UploadedAsset:
    """A staged image reachable by the generation backend.

    Attributes:
        url: Public URL of the staged image.
        role: Whether the primary or a fallback host served the upload.
        host: Registry name of the host (e.g. ``"imgbb"``).
    """

    url: str
    role: HostRole
    host: str

    def __post_init__(self) -> None:
        _check_non_empty("UploadedAsset", "url", self.url)
        _check_non_empty("UploadedAsset", "host", self.host)


# ---------------------------------------------------------------------------
# Job lifecycle models
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class GenerationJob:
    """An asynchronous backend job awaiting a terminal state.

    Attributes:
        job_id: Backend-assigned job identifier.
        submitted_at: When the submit call returned.
        status: Status reported by the submit response.
    """

    job_id: str
    submitted_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    status: JobStatus = JobStatus.IN_PROGRESS

    def __post_init__(self) -> None:
        _check_non_empty("GenerationJob", "job_id", self.job_id)


@dataclass(slots=True)
class PollState:
    """Backoff bookkeeping for a single poll loop run.

    Attributes:
        started_at: Clock reading when polling began (seconds).
        interval_seconds: Current wait before the next status check.
        attempt_count: Status checks performed so far.
    """

    started_at: float
    interval_seconds: float
    attempt_count: int = 0

    def elapsed(self, now: float) -> float:
        """Return seconds spent polling as of *now*."""
        return max(now - self.started_at, 0.0)

    def grow(self, factor: float, ceiling: float) -> float:
        """Grow the interval multiplicatively, never past *ceiling* and never down."""
        grown = min(self.interval_seconds * factor, ceiling)
        self.interval_seconds = max(self.interval_seconds, grown)
        return self.interval_seconds


@dataclass(frozen=True, slots=True)
class ImmediateResult:
    """The backend finished the job inside the submit call."""

    image_url: str

    def __post_init__(self) -> None:
        _check_non_empty("ImmediateResult", "image_url", self.image_url)


@dataclass(frozen=True, slots=True)
class JobStarted:
    """The backend accepted the job and it must be polled."""

    job: GenerationJob


@dataclass(frozen=True, slots=True)
class SubmitFailure:
    """The submission did not yield a usable job or result.

    Attributes:
        reason: Short internal description (e.g. ``"Unexpected status: FOO"``).
        status_code: HTTP status of the submit response, when one was received.
        detail: Captured response body or transport error text.
        capacity: ``True`` when the backend signalled overload or did not answer in time.
    """

    reason: str
    status_code: int | None = None
    detail: str = ""
    capacity: bool = False


SubmitOutcome = ImmediateResult | JobStarted | SubmitFailure


@dataclass(frozen=True, slots=True)
class PollOutcome:
    """Terminal result of the poll loop.

    Attributes:
        state: Which terminal state was reached.
        job_id: The job that was polled.
        image_url: Generated image URL (``COMPLETED`` only).
        reason: Internal description of a non-success terminal state.
        elapsed_seconds: Wall-clock time spent polling.
        attempts: Status checks performed.
    """

    state: PollTerminal
    job_id: str
    image_url: str = ""
    reason: str = ""
    elapsed_seconds: float = 0.0
    attempts: int = 0

    def __post_init__(self) -> None:
        if self.state is PollTerminal.COMPLETED:
            _check_non_empty("PollOutcome", "image_url", self.image_url)
        _check_min("PollOutcome", "elapsed_seconds", self.elapsed_seconds, 0)


# ---------------------------------------------------------------------------
# Caller-facing result
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class GenerationResult:
    """The single result contract returned to callers.

    Attributes:
        success: Whether an image was generated.
        image_url: Generated image URL (success only).
        error_kind: Error category (failure only).
        message: Fixed caller-facing message (failure only).
        http_status: HTTP status for the response.
        detail: Internal diagnostic detail, echoed only in debug mode.
    """

    success: bool
    image_url: str = ""
    error_kind: ErrorKind | None = None
    message: str = ""
    http_status: int = 200
    detail: str = ""

    def __post_init__(self) -> None:
        if self.success:
            _check_non_empty("GenerationResult", "image_url", self.image_url)
        elif self.error_kind is None:
            raise ModelValidationError(
                "GenerationResult", "error_kind", None, "required when success is False"
            )

    def to_response_body(self, *, request_id: str = "", debug: bool = False) -> dict[str, Any]:
        """Serialise to the JSON body sent to the caller."""
        if self.success:
            return {"success": True, "imageUrl": self.image_url}

        body: dict[str, Any] = {
            "error": self.error_kind.value if self.error_kind else ErrorKind.INTERNAL_ERROR.value,
            "message": self.message,
        }
        if request_id:
            body["requestId"] = request_id
        if debug and self.detail:
            body["details"] = self.detail
        return body


# ---------------------------------------------------------------------------
# Validation helpers (module-private)
# ---------------------------------------------------------------------------


def _check_min(model: str, field_name: str, value: float | int, lo: float | int) -> None:
    """Raise `ModelValidationError` if *value* is below *lo*."""
    if value < lo:
        raise ModelValidationError(model, field_name, value, f"must be >= {lo}")


def _check_non_empty(model: str, field_name: str, value: str) -> None:
    """Raise `ModelValidationError` if *value* is empty or blank."""
    if not value or not value.strip():
        raise ModelValidationError(model, field_name, value, "must not be empty")


def _check_non_empty_bytes(model: str, field_name: str, value: bytes) -> None:
    """Raise `ModelValidationError` if *value* holds no bytes."""
    if not value:
        raise ModelValidationError(model, field_name, b"", "must not be empty")
