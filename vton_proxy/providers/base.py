"""Provider abstract base classes.

Defines the contracts that every external collaborator adapter must
implement. The activities interact exclusively with these interfaces —
they never know (or care) which concrete host or backend is behind them.

Image host lifecycle:
    ``upload(data)`` — stage bytes and return a public URL.

Generation backend lifecycle:
    1. ``submit(payload)``                 — start a job (may finish instantly).
    2. ``fetch_status(job_id, route)``     — read job status via one URL convention.

References:
    ``vton_proxy.providers.imgbb`` / ``imgur`` / ``fileio`` (image hosts)
    ``vton_proxy.providers.runpod`` (generation backend)
"""

from __future__ import annotations

import abc
import enum
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from vton_proxy.core.exceptions import ProxyError
from vton_proxy.models.backend import HostUploadResponse

if TYPE_CHECKING:
    import httpx

    from vton_proxy.core.config import ProxyConfig
    from vton_proxy.models.backend import BackendJobResponse
    from vton_proxy.models.payloads import SubmitPayload


class StatusRoute(enum.Enum):
    """URL conventions under which the backend serves job status.

    Values:
        PRIMARY:   ``{base}/status/{job_id}``
        ALTERNATE: ``{base}/{job_id}``
    """

    PRIMARY = "primary"
    ALTERNATE = "alternate"


class ImageHost(abc.ABC):
    """Abstract base class for image hosting adapters.

    Concrete hosts receive the shared ``ProxyConfig`` and the per-request
    ``httpx.AsyncClient``; they never open their own client.
    """

    #: Registry name of the host (e.g. ``"imgbb"``).
    name: str = ""

    def __init__(self, config: ProxyConfig, client: httpx.AsyncClient) -> None:
        self._config = config
        self._client = client

    @property
    def config(self) -> ProxyConfig:
        """Return the proxy configuration (read-only)."""
        return self._config

    @property
    def is_configured(self) -> bool:
        """Return ``False`` when a required credential is missing.

        Unconfigured hosts are skipped by the upload chain.
        """
        return True

    @abc.abstractmethod
    async def upload(self, data: bytes) -> str:
        """Stage *data* and return its public URL.

        Raises:
            HostUploadError: On transport errors, non-success HTTP status,
                or a response without ``success: true`` and a URL.
        """

    def _read_public_url(self, response: httpx.Response) -> str:
        """Validate a host response and return the hosted URL.

        Raises:
            HostUploadError: If the status is not 2xx, the body is not JSON,
                or the body lacks ``success: true`` and a URL.
        """
        if response.is_error:
            msg = f"HTTP {response.status_code}: {response.text[:200]}"
            raise HostUploadError(self.name, msg, retryable=True)

        try:
            parsed = HostUploadResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            msg = f"Unreadable upload response: {exc}"
            raise HostUploadError(self.name, msg, retryable=True) from exc

        url = parsed.public_url()
        if not parsed.success or not url:
            msg = "Upload response did not report success"
            raise HostUploadError(self.name, msg, retryable=True)
        return url


class GenerationBackend(abc.ABC):
    """Abstract base class for generation backend adapters."""

    #: Registry name of the backend.
    name: str = ""

    def __init__(self, config: ProxyConfig, client: httpx.AsyncClient) -> None:
        self._config = config
        self._client = client

    @property
    def config(self) -> ProxyConfig:
        """Return the proxy configuration (read-only)."""
        return self._config

    @abc.abstractmethod
    async def submit(self, payload: SubmitPayload) -> BackendJobResponse:
        """Submit a generation job.

        Raises:
            BackendError: On transport errors, non-success HTTP status, or
                an undecodable response body.
        """

    @abc.abstractmethod
    async def fetch_status(
        self,
        job_id: str,
        route: StatusRoute = StatusRoute.PRIMARY,
    ) -> BackendJobResponse:
        """Read the current status of *job_id* using *route*'s URL convention.

        Raises:
            BackendStatusError: On transport errors, non-success HTTP status,
                or an undecodable response body.
        """


# ---------------------------------------------------------------------------
# Provider exceptions
# ---------------------------------------------------------------------------


class ProviderError(ProxyError):
    """Base exception for provider adapter errors.

    Attributes:
        provider: Name of the provider that raised the error.
        message: Human-readable error description.
        retryable: Whether the caller should retry the operation.
    """

    default_stage = "provider"
    default_code = "PROVIDER_ERROR"

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        retryable: bool = False,
    ) -> None:
        self.provider = provider
        super().__init__(
            message,
            retryable=retryable,
            code=self.default_code,
            stage=self.default_stage,
        )

    def __str__(self) -> str:
        return f"[{self.provider}] {self.message}"


class HostUploadError(ProviderError):
    """An image host rejected or failed an upload."""

    default_stage = "upload_images"
    default_code = "HOST_UPLOAD_FAILED"


class BackendError(ProviderError):
    """The generation backend failed a submit call.

    Attributes:
        status_code: HTTP status, when a response was received.
        body: Captured response body for diagnostics.
    """

    default_stage = "submit_job"
    default_code = "BACKEND_FAILED"

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        status_code: int | None = None,
        body: str = "",
        retryable: bool = True,
    ) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(provider, message, retryable=retryable)


class BackendStatusError(BackendError):
    """A job status read failed (transport, HTTP, or decode)."""

    default_stage = "poll_job"
    default_code = "BACKEND_STATUS_FAILED"
