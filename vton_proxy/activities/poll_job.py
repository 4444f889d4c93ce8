"""Poll job activity — drive a backend job to a terminal state.

The poll loop is a cooperative coroutine: it suspends between status
checks without holding a thread, so the host keeps serving other
requests while a job runs.

State machine::

    Polling ──► Completed | Failed | Cancelled | TimedOut

Each iteration:
    1. Wait ``interval`` seconds (clamped to the remaining budget).
    2. Read status via ``StatusRoute.PRIMARY``.
    3. If that read fails, read once via ``StatusRoute.ALTERNATE``.
       If both fail the iteration is inconclusive; polling continues.
    4. ``COMPLETED`` with an image ends in success, ``COMPLETED``
       without one ends in failure, ``FAILED``/``CANCELLED`` end in the
       matching terminal state, anything else continues.
    5. Inconclusive and continuing iterations grow the interval
       (``interval * factor``, capped at ``max_interval``).

The aggregate budget is ``timeout_seconds``; once it is spent the loop
returns ``TimedOut`` with the elapsed time. Every status read is also
bounded by the remaining budget, so a slow read cannot overrun it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from vton_proxy.core import constants
from vton_proxy.models.generation import (
    JobStatus,
    PollOutcome,
    PollState,
    PollTerminal,
)
from vton_proxy.providers.base import BackendStatusError, StatusRoute

if TYPE_CHECKING:
    from vton_proxy.core.config import ProxyConfig
    from vton_proxy.models.backend import BackendJobResponse
    from vton_proxy.models.generation import GenerationJob
    from vton_proxy.providers.base import GenerationBackend

logger = logging.getLogger("vton_proxy.activities.poll_job")

Sleeper = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]


@dataclass(frozen=True, slots=True)
class PollSettings:
    """Timing parameters for one poll loop run.

    Attributes:
        initial_interval_seconds: First wait before checking status.
        max_interval_seconds: Ceiling for the grown interval.
        backoff_factor: Multiplicative growth per non-terminal iteration.
        timeout_seconds: Aggregate wall-clock budget.
    """

    initial_interval_seconds: float = constants.DEFAULT_POLL_INITIAL_INTERVAL_SECONDS
    max_interval_seconds: float = constants.DEFAULT_POLL_MAX_INTERVAL_SECONDS
    backoff_factor: float = constants.DEFAULT_POLL_BACKOFF_FACTOR
    timeout_seconds: float = constants.DEFAULT_POLL_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if self.initial_interval_seconds <= 0:
            msg = "initial_interval_seconds must be > 0"
            raise ValueError(msg)
        if self.max_interval_seconds < self.initial_interval_seconds:
            msg = "max_interval_seconds must be >= initial_interval_seconds"
            raise ValueError(msg)
        if self.backoff_factor < 1.0:
            msg = "backoff_factor must be >= 1.0"
            raise ValueError(msg)
        if self.timeout_seconds <= 0:
            msg = "timeout_seconds must be > 0"
            raise ValueError(msg)

    @classmethod
    def from_config(cls, config: ProxyConfig) -> PollSettings:
        return cls(
            initial_interval_seconds=config.poll_initial_interval_seconds,
            max_interval_seconds=config.poll_max_interval_seconds,
            backoff_factor=config.poll_backoff_factor,
            timeout_seconds=config.poll_timeout_seconds,
        )


async def poll_job(
    backend: GenerationBackend,
    job: GenerationJob,
    *,
    settings: PollSettings | None = None,
    sleep: Sleeper = asyncio.sleep,
    clock: Clock = time.monotonic,
    correlation_id: str = "",
) -> PollOutcome:
    """Poll *job* until it reaches a terminal state or the budget is spent.

    Args:
        backend: Backend adapter used for status reads.
        job: The job returned by the submitter.
        settings: Timing parameters (defaults apply when ``None``).
        sleep: Awaitable sleep, injectable for tests.
        clock: Monotonic clock in seconds, injectable for tests.
        correlation_id: Request correlation id for log context.

    Returns:
        A ``PollOutcome``; this function never raises for backend errors.
    """
    settings = settings or PollSettings()
    state = PollState(started_at=clock(), interval_seconds=settings.initial_interval_seconds)

    logger.info(
        "poll_job started | request=%s | job=%s | interval=%.1fs | budget=%.0fs",
        correlation_id,
        job.job_id,
        state.interval_seconds,
        settings.timeout_seconds,
    )

    while True:
        remaining = settings.timeout_seconds - state.elapsed(clock())
        if remaining <= 0:
            break

        await sleep(min(state.interval_seconds, remaining))

        remaining = settings.timeout_seconds - state.elapsed(clock())
        if remaining <= 0:
            break

        state.attempt_count += 1
        response = await _read_status(
            backend,
            job.job_id,
            deadline=state.started_at + settings.timeout_seconds,
            clock=clock,
            correlation_id=correlation_id,
        )

        if response is not None:
            outcome = _terminal_outcome(response, job.job_id, state, clock())
            if outcome is not None:
                _log_outcome(outcome, correlation_id)
                return outcome
            logger.info(
                "Job still running | request=%s | job=%s | status=%s | attempt=%d",
                correlation_id,
                job.job_id,
                response.status or "<empty>",
                state.attempt_count,
            )

        state.grow(settings.backoff_factor, settings.max_interval_seconds)

    elapsed = state.elapsed(clock())
    outcome = PollOutcome(
        state=PollTerminal.TIMED_OUT,
        job_id=job.job_id,
        reason=f"Generation timed out after {round(elapsed)} seconds",
        elapsed_seconds=elapsed,
        attempts=state.attempt_count,
    )
    _log_outcome(outcome, correlation_id)
    return outcome


async def _read_status(
    backend: GenerationBackend,
    job_id: str,
    *,
    deadline: float,
    clock: Clock,
    correlation_id: str,
) -> BackendJobResponse | None:
    """Read job status, falling back to the alternate route once.

    Each read is bounded by the time left until *deadline*. Returns
    ``None`` when both routes fail (an inconclusive iteration).
    """
    try:
        return await asyncio.wait_for(
            backend.fetch_status(job_id, StatusRoute.PRIMARY),
            timeout=deadline - clock(),
        )
    except (BackendStatusError, TimeoutError) as exc:
        logger.warning(
            "Status read failed, trying alternate route | request=%s | job=%s | error=%s",
            correlation_id,
            job_id,
            _describe(exc),
        )

    remaining = deadline - clock()
    if remaining <= 0:
        return None

    try:
        return await asyncio.wait_for(
            backend.fetch_status(job_id, StatusRoute.ALTERNATE),
            timeout=remaining,
        )
    except (BackendStatusError, TimeoutError) as exc:
        logger.warning(
            "Alternate status read failed, continuing to poll | request=%s | job=%s | error=%s",
            correlation_id,
            job_id,
            _describe(exc),
        )
    return None


def _terminal_outcome(
    response: BackendJobResponse,
    job_id: str,
    state: PollState,
    now: float,
) -> PollOutcome | None:
    """Return the terminal outcome for *response*, or ``None`` to keep polling."""
    status = response.job_status
    elapsed = state.elapsed(now)

    if status is JobStatus.COMPLETED:
        image_url = response.image_url()
        if image_url:
            return PollOutcome(
                state=PollTerminal.COMPLETED,
                job_id=job_id,
                image_url=image_url,
                elapsed_seconds=elapsed,
                attempts=state.attempt_count,
            )
        return PollOutcome(
            state=PollTerminal.FAILED,
            job_id=job_id,
            reason="Malformed completion: no image in response",
            elapsed_seconds=elapsed,
            attempts=state.attempt_count,
        )

    if status is JobStatus.FAILED:
        detail = f": {response.error}" if response.error else ""
        return PollOutcome(
            state=PollTerminal.FAILED,
            job_id=job_id,
            reason=f"Generation failed on backend{detail}",
            elapsed_seconds=elapsed,
            attempts=state.attempt_count,
        )

    if status is JobStatus.CANCELLED:
        return PollOutcome(
            state=PollTerminal.CANCELLED,
            job_id=job_id,
            reason="Generation was cancelled",
            elapsed_seconds=elapsed,
            attempts=state.attempt_count,
        )

    return None


def _describe(exc: BaseException) -> str:
    if isinstance(exc, BackendStatusError):
        return exc.message
    return "status read exceeded remaining poll budget"


def _log_outcome(outcome: PollOutcome, correlation_id: str) -> None:
    log = logger.info if outcome.state is PollTerminal.COMPLETED else logger.warning
    log(
        "poll_job finished | request=%s | job=%s | state=%s | attempts=%d | elapsed=%.1fs",
        correlation_id,
        outcome.job_id,
        outcome.state.value,
        outcome.attempts,
        outcome.elapsed_seconds,
    )
