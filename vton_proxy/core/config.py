"""Proxy configuration loaded from environment variables.

All configuration values have sensible defaults. Azure Functions app
settings (or ``local.settings.json`` for local dev) are the source of
truth.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any numeric
    value is out of its valid range or ``IMAGE_HOSTS`` names an
    unregistered host.  Missing backend credentials are
    *not* a startup failure — ``is_backend_configured`` gates each
    request instead, so the health endpoint stays reachable.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from vton_proxy.core import constants
from vton_proxy.core.exceptions import PermanentError
from vton_proxy.providers.factory import list_image_hosts


class ConfigValidationError(PermanentError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class ProxyConfig:
    """Immutable proxy configuration.

    Loaded once at function startup and threaded through the pipeline.

    Attributes:
        runpod_api_key: Bearer token for the generation backend.
        runpod_api_url: Submit URL of the backend (``.../run`` or ``.../runsync``).
        imgbb_api_key: ImgBB credential; the ImgBB host is skipped when empty.
        imgur_client_id: Imgur ``Client-ID`` for anonymous uploads.
        image_hosts: Ordered image host chain (first entry is the primary host).
        http_timeout_seconds: Per outbound HTTP call timeout.
        upload_timeout_seconds: Deadline for uploading both images.
        submit_timeout_seconds: Deadline for the whole job submission call.
        poll_initial_interval_seconds: First wait before polling job status.
        poll_max_interval_seconds: Ceiling for the backoff interval.
        poll_backoff_factor: Multiplicative interval growth per iteration.
        poll_timeout_seconds: Aggregate wall-clock budget for the poll loop.
        max_file_bytes: Per-file upload size limit.
        rate_limit_max_requests: Requests allowed per client per window.
        rate_limit_window_seconds: Fixed rate-limit window length.
        default_swap_type: Style selector used when ``swapType`` is absent.
        output_format: Output image format requested from the backend.
        output_quality: Output image quality requested from the backend (1-100).
        premium_user: Opaque passthrough flag; not sent when ``None``.
        debug_errors: Echo internal error detail in responses.
    """

    runpod_api_key: str = ""
    runpod_api_url: str = ""
    imgbb_api_key: str = ""
    imgur_client_id: str = constants.IMGUR_PUBLIC_CLIENT_ID
    image_hosts: tuple[str, ...] = constants.DEFAULT_IMAGE_HOSTS
    http_timeout_seconds: float = constants.DEFAULT_HTTP_TIMEOUT_SECONDS
    upload_timeout_seconds: float = constants.DEFAULT_UPLOAD_TIMEOUT_SECONDS
    submit_timeout_seconds: float = constants.DEFAULT_SUBMIT_TIMEOUT_SECONDS
    poll_initial_interval_seconds: float = constants.DEFAULT_POLL_INITIAL_INTERVAL_SECONDS
    poll_max_interval_seconds: float = constants.DEFAULT_POLL_MAX_INTERVAL_SECONDS
    poll_backoff_factor: float = constants.DEFAULT_POLL_BACKOFF_FACTOR
    poll_timeout_seconds: float = constants.DEFAULT_POLL_TIMEOUT_SECONDS
    max_file_bytes: int = constants.DEFAULT_MAX_FILE_BYTES
    rate_limit_max_requests: int = constants.DEFAULT_RATE_LIMIT_MAX_REQUESTS
    rate_limit_window_seconds: float = constants.DEFAULT_RATE_LIMIT_WINDOW_SECONDS
    default_swap_type: str = constants.DEFAULT_SWAP_TYPE
    output_format: str = constants.DEFAULT_OUTPUT_FORMAT
    output_quality: int = constants.DEFAULT_OUTPUT_QUALITY
    premium_user: bool | None = None
    debug_errors: bool = False

    @property
    def is_backend_configured(self) -> bool:
        """Return ``True`` when both backend credentials are present."""
        return bool(self.runpod_api_key and self.runpod_api_url)

    @property
    def runpod_base_url(self) -> str:
        """Return the status base URL derived from the submit URL.

        The backend serves status under the endpoint root, so the
        ``/runsync`` or ``/run`` suffix of the submit URL is removed.
        """
        base = self.runpod_api_url.rstrip("/")
        for suffix in constants.SUBMIT_SUFFIXES:
            if base.endswith(suffix):
                return base[: -len(suffix)]
        return base

    @classmethod
    def from_env(cls) -> ProxyConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a numeric value is out of range
                or the image host chain is empty or names an
                unregistered host.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``POLL_TIMEOUT_SECONDS=abc``).
        """
        config = cls(
            runpod_api_key=os.getenv("RUNPOD_API_KEY", ""),
            runpod_api_url=os.getenv("RUNPOD_API_URL", ""),
            imgbb_api_key=os.getenv("IMGBB_API_KEY", ""),
            imgur_client_id=os.getenv("IMGUR_CLIENT_ID", "") or constants.IMGUR_PUBLIC_CLIENT_ID,
            image_hosts=_parse_hosts(os.getenv("IMAGE_HOSTS", "")),
            http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", "30")),
            upload_timeout_seconds=float(os.getenv("UPLOAD_TIMEOUT_SECONDS", "90")),
            submit_timeout_seconds=float(os.getenv("SUBMIT_TIMEOUT_SECONDS", "60")),
            poll_initial_interval_seconds=float(os.getenv("POLL_INITIAL_INTERVAL_SECONDS", "10")),
            poll_max_interval_seconds=float(os.getenv("POLL_MAX_INTERVAL_SECONDS", "30")),
            poll_backoff_factor=float(os.getenv("POLL_BACKOFF_FACTOR", "1.2")),
            poll_timeout_seconds=float(os.getenv("POLL_TIMEOUT_SECONDS", "300")),
            max_file_bytes=int(os.getenv("MAX_FILE_BYTES", str(constants.DEFAULT_MAX_FILE_BYTES))),
            rate_limit_max_requests=int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "5")),
            rate_limit_window_seconds=float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60")),
            default_swap_type=os.getenv("DEFAULT_SWAP_TYPE", constants.DEFAULT_SWAP_TYPE),
            output_format=os.getenv("OUTPUT_FORMAT", constants.DEFAULT_OUTPUT_FORMAT),
            output_quality=int(os.getenv("OUTPUT_QUALITY", "90")),
            premium_user=_parse_optional_bool(os.getenv("BACKEND_PREMIUM_USER")),
            debug_errors=(
                _parse_optional_bool(os.getenv("DEBUG_ERRORS")) is True
                or os.getenv("ENVIRONMENT", "").lower() == "development"
            ),
        )
        _validate(config)
        return config


def _parse_hosts(raw: str) -> tuple[str, ...]:
    """Split a comma-separated host chain, falling back to the default chain."""
    hosts = tuple(part.strip().lower() for part in raw.split(",") if part.strip())
    return hosts or constants.DEFAULT_IMAGE_HOSTS


def _parse_optional_bool(raw: str | None) -> bool | None:
    """Parse ``1/true/yes`` and ``0/false/no``; anything else is ``None``."""
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in {"1", "true", "yes"}:
        return True
    if value in {"0", "false", "no"}:
        return False
    return None


def _validate(config: ProxyConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    for key, value in (
        ("HTTP_TIMEOUT_SECONDS", config.http_timeout_seconds),
        ("UPLOAD_TIMEOUT_SECONDS", config.upload_timeout_seconds),
        ("SUBMIT_TIMEOUT_SECONDS", config.submit_timeout_seconds),
        ("POLL_INITIAL_INTERVAL_SECONDS", config.poll_initial_interval_seconds),
        ("POLL_TIMEOUT_SECONDS", config.poll_timeout_seconds),
        ("RATE_LIMIT_WINDOW_SECONDS", config.rate_limit_window_seconds),
    ):
        if value <= 0:
            raise ConfigValidationError(key, value, "must be > 0 (seconds)")

    if config.poll_max_interval_seconds < config.poll_initial_interval_seconds:
        raise ConfigValidationError(
            "POLL_MAX_INTERVAL_SECONDS",
            config.poll_max_interval_seconds,
            f"must be >= POLL_INITIAL_INTERVAL_SECONDS ({config.poll_initial_interval_seconds})",
        )

    if config.poll_backoff_factor < 1.0:
        raise ConfigValidationError(
            "POLL_BACKOFF_FACTOR",
            config.poll_backoff_factor,
            "must be >= 1.0",
        )

    if config.max_file_bytes <= 0:
        raise ConfigValidationError("MAX_FILE_BYTES", config.max_file_bytes, "must be > 0 (bytes)")

    if config.rate_limit_max_requests < 1:
        raise ConfigValidationError(
            "RATE_LIMIT_MAX_REQUESTS",
            config.rate_limit_max_requests,
            "must be >= 1",
        )

    if not 1 <= config.output_quality <= 100:
        raise ConfigValidationError(
            "OUTPUT_QUALITY",
            config.output_quality,
            "must be between 1 and 100",
        )

    if not config.image_hosts:
        raise ConfigValidationError("IMAGE_HOSTS", config.image_hosts, "must not be empty")

    known = list_image_hosts()
    unknown = [name for name in config.image_hosts if name not in known]
    if unknown:
        raise ConfigValidationError(
            "IMAGE_HOSTS",
            ",".join(config.image_hosts),
            f"unknown host(s) {', '.join(unknown)}; available: {', '.join(known)}",
        )
