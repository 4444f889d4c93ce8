"""Unified proxy exception taxonomy.

Provides a shared base exception hierarchy for every stage of a
generation request (ingress, upload, submission, polling). Every domain
exception inherits from ``ProxyError`` and carries structured context
fields that drive outcome classification, retry hints, and operator
diagnostics.

Taxonomy categories
-------------------
- ``ValidationError``   — bad caller input, never retryable.
- ``TransientError``    — temporary failures (network, throttle, deadline), retryable.
- ``PermanentError``    — unrecoverable failures (e.g. bad configuration), not retryable.
- ``ContractError``     — payload/schema drift or a broken model invariant, never retryable.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for logging.
"""

from __future__ import annotations


class ProxyError(Exception):
    """Base exception for all proxy-domain errors.

    Attributes:
        message: Human-readable error description (internal, never sent to callers).
        stage: Stage where the error occurred
            (e.g. ``"upload_images"``, ``"submit_job"``).
        code: Machine-readable error code (e.g. ``"UPLOAD_FAILED"``).
        retryable: Whether the caller may reasonably retry the request.
        correlation_id: Inbound request correlation identifier.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(ProxyError):
    """Caller input validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(ProxyError):
    """Temporary failure that may succeed on retry."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(ProxyError):
    """Unrecoverable failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(ProxyError):
    """Payload or schema drift, or a broken model invariant. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Ingress errors
# ---------------------------------------------------------------------------


class BadRequestError(ValidationError):
    """Missing files, malformed multipart body, or non-image upload."""

    default_stage = "ingress"
    default_code = "BAD_REQUEST"


class PayloadTooLargeError(ValidationError):
    """An uploaded file exceeds the configured per-file size limit.

    Attributes:
        field_name: Multipart field that exceeded the limit.
        size_bytes: Observed size of the file.
        limit_bytes: Configured maximum.
    """

    default_stage = "ingress"
    default_code = "PAYLOAD_TOO_LARGE"

    def __init__(self, field_name: str, size_bytes: int, limit_bytes: int) -> None:
        self.field_name = field_name
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes
        super().__init__(
            f"{field_name} is {size_bytes} bytes, exceeds limit of {limit_bytes} bytes"
        )


class RateLimitedError(TransientError):
    """The client exhausted its request allowance for the current window."""

    default_stage = "ingress"
    default_code = "RATE_LIMITED"
