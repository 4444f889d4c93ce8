"""Submit job activity — start a generation job and interpret the reply.

Builds the backend payload from the two staged image URLs, sends it
under a whole-call deadline, and maps the immediate response onto one
of three outcomes:

- ``ImmediateResult`` — the backend finished inside the submit call.
- ``JobStarted``      — the backend returned a job id to poll.
- ``SubmitFailure``   — anything else, with diagnostics captured.

Backend errors never escape this activity; they become
``SubmitFailure`` values for the outcome classifier.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from vton_proxy.models.generation import (
    GenerationJob,
    ImmediateResult,
    JobStarted,
    JobStatus,
    SubmitFailure,
)
from vton_proxy.providers.base import BackendError
from vton_proxy.utils.helpers import new_correlation_id

if TYPE_CHECKING:
    from vton_proxy.core.config import ProxyConfig
    from vton_proxy.models.backend import BackendJobResponse
    from vton_proxy.models.generation import SubmitOutcome, UploadedAsset
    from vton_proxy.models.payloads import SubmitPayload
    from vton_proxy.providers.base import GenerationBackend

logger = logging.getLogger("vton_proxy.activities.submit_job")

# Backend HTTP statuses that indicate the service is saturated.
_CAPACITY_STATUSES = frozenset({429, 503})


def build_submit_payload(
    subject: UploadedAsset,
    garment: UploadedAsset,
    *,
    swap_type: str,
    config: ProxyConfig,
    request_id: str | None = None,
) -> SubmitPayload:
    """Build the backend submit body.

    A fresh ``request_id`` is generated per call unless one is supplied.
    ``premium_user`` is an opaque passthrough and only included when
    configured.
    """
    payload: SubmitPayload = {
        "input": {
            "request_id": request_id or new_correlation_id("req"),
            "model_img": subject.url,
            "cloth_img": garment.url,
            "swap_type": swap_type,
            "output_format": config.output_format,
            "output_quality": config.output_quality,
        }
    }
    if config.premium_user is not None:
        payload["input"]["premium_user"] = config.premium_user
    return payload


async def submit_job(
    backend: GenerationBackend,
    subject: UploadedAsset,
    garment: UploadedAsset,
    *,
    swap_type: str,
    config: ProxyConfig,
    correlation_id: str = "",
) -> SubmitOutcome:
    """Submit a generation job and classify the immediate response.

    The whole call is bounded by ``config.submit_timeout_seconds`` in
    addition to the per-request HTTP timeout.

    Returns:
        ``ImmediateResult``, ``JobStarted``, or ``SubmitFailure``.
    """
    payload = build_submit_payload(subject, garment, swap_type=swap_type, config=config)

    logger.info(
        "submit_job started | request=%s | backend_request_id=%s | swap_type=%s",
        correlation_id,
        payload["input"]["request_id"],
        swap_type,
    )

    try:
        response = await asyncio.wait_for(
            backend.submit(payload),
            timeout=config.submit_timeout_seconds,
        )
    except TimeoutError:
        logger.error(
            "submit_job timed out | request=%s | timeout=%.0fs",
            correlation_id,
            config.submit_timeout_seconds,
        )
        return SubmitFailure(
            reason="Initial request timed out, service may be overloaded",
            capacity=True,
        )
    except BackendError as exc:
        logger.error(
            "submit_job failed | request=%s | status=%s | error=%s | body=%s",
            correlation_id,
            exc.status_code,
            exc.message,
            exc.body,
        )
        return SubmitFailure(
            reason=exc.message,
            status_code=exc.status_code,
            detail=exc.body or exc.message,
            capacity=exc.status_code is None or exc.status_code in _CAPACITY_STATUSES,
        )

    outcome = interpret_submit_response(response)
    logger.info(
        "submit_job completed | request=%s | status=%s | outcome=%s",
        correlation_id,
        response.status,
        type(outcome).__name__,
    )
    return outcome


def interpret_submit_response(response: BackendJobResponse) -> SubmitOutcome:
    """Map a successful submit response onto a ``SubmitOutcome``."""
    status = response.job_status

    if status is JobStatus.COMPLETED:
        image_url = response.image_url()
        if image_url:
            return ImmediateResult(image_url=image_url)
        return SubmitFailure(
            reason="Malformed completion: no image in response",
            detail=response.model_dump_json()[:500],
        )

    if status.is_running:
        job_id = (response.id or "").strip()
        if not job_id:
            return SubmitFailure(reason="No job ID received from backend")
        return JobStarted(job=GenerationJob(job_id=job_id, status=status))

    if status is JobStatus.FAILED:
        return SubmitFailure(
            reason="Generation failed on backend",
            detail=str(response.error or ""),
        )

    if status is JobStatus.CANCELLED:
        return SubmitFailure(reason="Generation was cancelled")

    return SubmitFailure(
        reason=f"Unexpected response status: {response.status}",
        detail=response.model_dump_json()[:500],
    )
