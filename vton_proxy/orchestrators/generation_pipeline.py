"""Generation pipeline — coordinate one try-on request end to end.

Phases
------
1. **Upload** — stage both images concurrently on the host chain,
   bounded by ``upload_timeout_seconds``.
2. **Submit** — start the backend job; an immediate completion skips
   polling entirely.
3. **Poll** — drive the job to a terminal state under the poll budget.
4. **Classify** — map whichever path ran onto one ``GenerationResult``.

The pipeline owns the outbound ``httpx.AsyncClient`` for the request
and closes it on every exit path. It never raises: a ``ProxyError``
escaping a phase is logged with its structured error dict, anything
else with its traceback, and both are classified.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

import httpx

from vton_proxy.activities.classify_outcome import (
    classify_exception,
    from_poll_outcome,
    from_submit_outcome,
)
from vton_proxy.activities.poll_job import PollSettings, poll_job
from vton_proxy.activities.submit_job import submit_job
from vton_proxy.activities.upload_images import UploadError, upload_pair
from vton_proxy.core.exceptions import ProxyError
from vton_proxy.models.generation import JobStarted
from vton_proxy.providers.factory import build_host_chain, get_backend

if TYPE_CHECKING:
    from vton_proxy.activities.poll_job import Clock, Sleeper
    from vton_proxy.core.config import ProxyConfig
    from vton_proxy.models.generation import GenerationRequest, GenerationResult

logger = logging.getLogger("vton_proxy.orchestrators.generation_pipeline")


async def run_generation(
    request: GenerationRequest,
    *,
    config: ProxyConfig,
    correlation_id: str = "",
    client: httpx.AsyncClient | None = None,
    sleep: Sleeper = asyncio.sleep,
    clock: Clock = time.monotonic,
) -> GenerationResult:
    """Run upload → submit → poll → classify for one request.

    Args:
        request: Validated inbound request.
        config: Proxy configuration.
        correlation_id: Request correlation id for log context.
        client: Outbound HTTP client.  When ``None`` the pipeline opens
            and closes its own client.
        sleep: Awaitable sleep passed to the poll loop.
        clock: Monotonic clock passed to the poll loop.

    Returns:
        The caller-facing ``GenerationResult``.
    """
    started = time.monotonic()
    try:
        if client is not None:
            result = await _run_phases(
                request,
                config=config,
                client=client,
                correlation_id=correlation_id,
                sleep=sleep,
                clock=clock,
            )
        else:
            timeout = httpx.Timeout(config.http_timeout_seconds)
            async with httpx.AsyncClient(timeout=timeout) as owned:
                result = await _run_phases(
                    request,
                    config=config,
                    client=owned,
                    correlation_id=correlation_id,
                    sleep=sleep,
                    clock=clock,
                )
    except ProxyError as exc:
        logger.warning(
            "Generation pipeline failed | request=%s | error=%s",
            correlation_id,
            exc.to_error_dict(),
        )
        result = classify_exception(exc)
    except Exception as exc:
        logger.exception(
            "Generation pipeline failed | request=%s | error=%s",
            correlation_id,
            exc,
        )
        result = classify_exception(exc)

    logger.info(
        "Generation pipeline finished | request=%s | success=%s | status=%d | error=%s"
        " | duration=%.1fs",
        correlation_id,
        result.success,
        result.http_status,
        result.error_kind.value if result.error_kind else "",
        time.monotonic() - started,
    )
    return result


async def _run_phases(
    request: GenerationRequest,
    *,
    config: ProxyConfig,
    client: httpx.AsyncClient,
    correlation_id: str,
    sleep: Sleeper,
    clock: Clock,
) -> GenerationResult:
    # Phase 1: upload
    hosts = build_host_chain(config, client)
    try:
        subject, garment = await asyncio.wait_for(
            upload_pair(
                request.subject_image,
                request.garment_image,
                hosts=hosts,
                correlation_id=correlation_id,
            ),
            timeout=config.upload_timeout_seconds,
        )
    except TimeoutError as exc:
        msg = f"Image upload did not finish within {config.upload_timeout_seconds:.0f} seconds"
        raise UploadError(msg, correlation_id=correlation_id) from exc

    # Phase 2: submit
    backend = get_backend(config, client)
    outcome = await submit_job(
        backend,
        subject,
        garment,
        swap_type=request.swap_type,
        config=config,
        correlation_id=correlation_id,
    )
    if not isinstance(outcome, JobStarted):
        return from_submit_outcome(outcome)

    # Phase 3: poll
    poll_outcome = await poll_job(
        backend,
        outcome.job,
        settings=PollSettings.from_config(config),
        sleep=sleep,
        clock=clock,
        correlation_id=correlation_id,
    )
    return from_poll_outcome(poll_outcome)
