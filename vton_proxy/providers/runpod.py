"""RunPod serverless generation backend adapter.

Submits try-on jobs to a RunPod endpoint and reads job status. RunPod
has been observed serving status under two URL conventions, so
``fetch_status`` takes a ``StatusRoute``; choosing *when* to use the
alternate route is the poll loop's decision, not the adapter's.

URL layout (``base`` is ``RUNPOD_API_URL`` minus ``/run`` or ``/runsync``)::

    POST {RUNPOD_API_URL}          submit
    GET  {base}/status/{job_id}    StatusRoute.PRIMARY
    GET  {base}/{job_id}           StatusRoute.ALTERNATE
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError as PydanticValidationError

from vton_proxy.core.constants import BACKEND_NAME
from vton_proxy.models.backend import BackendJobResponse
from vton_proxy.providers.base import (
    BackendError,
    BackendStatusError,
    GenerationBackend,
    StatusRoute,
)

if TYPE_CHECKING:
    from vton_proxy.models.payloads import SubmitPayload

logger = logging.getLogger(__name__)

# Response bodies are truncated to this many characters in diagnostics.
_BODY_PREVIEW_CHARS = 500


class RunPodBackend(GenerationBackend):
    """Generation backend talking to a RunPod serverless endpoint."""

    name = BACKEND_NAME

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._config.runpod_api_key}"}

    def status_url(self, job_id: str, route: StatusRoute = StatusRoute.PRIMARY) -> str:
        """Return the status URL for *job_id* under *route*'s convention."""
        base = self._config.runpod_base_url
        if route is StatusRoute.ALTERNATE:
            return f"{base}/{job_id}"
        return f"{base}/status/{job_id}"

    async def submit(self, payload: SubmitPayload) -> BackendJobResponse:
        try:
            response = await self._client.post(
                self._config.runpod_api_url,
                json=payload,
                headers=self._headers,
            )
        except httpx.TimeoutException as exc:
            msg = "Initial request timed out, service may be overloaded"
            raise BackendError(self.name, msg) from exc
        except httpx.HTTPError as exc:
            raise BackendError(self.name, f"Connection error: {exc}") from exc

        if response.is_error:
            body = response.text[:_BODY_PREVIEW_CHARS]
            msg = f"Submit failed: {response.status_code} {response.reason_phrase}"
            raise BackendError(
                self.name,
                msg,
                status_code=response.status_code,
                body=body,
                retryable=response.status_code >= 500 or response.status_code == 429,
            )

        return self._parse(response, BackendError)

    async def fetch_status(
        self,
        job_id: str,
        route: StatusRoute = StatusRoute.PRIMARY,
    ) -> BackendJobResponse:
        url = self.status_url(job_id, route)
        try:
            response = await self._client.get(url, headers=self._headers)
        except httpx.HTTPError as exc:
            raise BackendStatusError(self.name, f"Status check transport error: {exc}") from exc

        if response.is_error:
            raise BackendStatusError(
                self.name,
                f"Status check failed: {response.status_code}",
                status_code=response.status_code,
                body=response.text[:_BODY_PREVIEW_CHARS],
            )

        return self._parse(response, BackendStatusError)

    def _parse(
        self,
        response: httpx.Response,
        error_cls: type[BackendError],
    ) -> BackendJobResponse:
        """Decode and validate a backend response body."""
        try:
            return BackendJobResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            raise error_cls(
                self.name,
                f"Undecodable response: {exc}",
                status_code=response.status_code,
                body=response.text[:_BODY_PREVIEW_CHARS],
            ) from exc
