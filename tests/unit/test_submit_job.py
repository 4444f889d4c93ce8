"""Tests for the submit_job activity.

Verifies payload construction and the mapping of every immediate
backend response onto ``ImmediateResult`` / ``JobStarted`` /
``SubmitFailure``.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from vton_proxy.activities.submit_job import (
    build_submit_payload,
    interpret_submit_response,
    submit_job,
)
from vton_proxy.core.config import ProxyConfig
from vton_proxy.models.backend import BackendJobResponse
from vton_proxy.models.generation import (
    HostRole,
    ImmediateResult,
    JobStarted,
    JobStatus,
    SubmitFailure,
    UploadedAsset,
)
from vton_proxy.providers.base import BackendError

SUBJECT = UploadedAsset(url="https://i.ibb.co/person.jpg", role=HostRole.PRIMARY, host="imgbb")
GARMENT = UploadedAsset(url="https://i.imgur.com/shirt.jpg", role=HostRole.FALLBACK, host="imgur")
CONFIG = ProxyConfig(runpod_api_key="k", runpod_api_url="https://api/v2/x/run")


def _response(**payload: object) -> BackendJobResponse:
    return BackendJobResponse.model_validate(payload)


def _backend(
    response: BackendJobResponse | None = None,
    error: Exception | None = None,
) -> MagicMock:
    backend = MagicMock()
    backend.submit = AsyncMock(return_value=response, side_effect=error)
    return backend


class TestBuildSubmitPayload:
    """Backend submit body."""

    def test_payload_fields(self) -> None:
        payload = build_submit_payload(
            SUBJECT, GARMENT, swap_type="Full-body", config=CONFIG, request_id="req-1"
        )
        assert payload == {
            "input": {
                "request_id": "req-1",
                "model_img": SUBJECT.url,
                "cloth_img": GARMENT.url,
                "swap_type": "Full-body",
                "output_format": "jpg",
                "output_quality": 90,
            }
        }

    def test_fresh_request_id_each_call(self) -> None:
        first = build_submit_payload(SUBJECT, GARMENT, swap_type="Auto", config=CONFIG)
        second = build_submit_payload(SUBJECT, GARMENT, swap_type="Auto", config=CONFIG)
        assert first["input"]["request_id"].startswith("req-")
        assert first["input"]["request_id"] != second["input"]["request_id"]

    def test_premium_user_passthrough(self) -> None:
        config = ProxyConfig(premium_user=False)
        payload = build_submit_payload(SUBJECT, GARMENT, swap_type="Auto", config=config)
        assert payload["input"]["premium_user"] is False

    def test_premium_user_omitted_when_unset(self) -> None:
        payload = build_submit_payload(SUBJECT, GARMENT, swap_type="Auto", config=CONFIG)
        assert "premium_user" not in payload["input"]


class TestInterpretSubmitResponse:
    """Immediate response → SubmitOutcome."""

    def test_completed_with_image(self) -> None:
        outcome = interpret_submit_response(
            _response(status="COMPLETED", output=[{"image": "https://cdn/out.jpg"}])
        )
        assert outcome == ImmediateResult(image_url="https://cdn/out.jpg")

    def test_completed_without_image(self) -> None:
        outcome = interpret_submit_response(_response(status="COMPLETED", output=[]))
        assert isinstance(outcome, SubmitFailure)
        assert outcome.reason.startswith("Malformed completion")

    @pytest.mark.parametrize("status", ["IN_PROGRESS", "IN_QUEUE"])
    def test_running_with_id(self, status: str) -> None:
        outcome = interpret_submit_response(_response(status=status, id="job-42"))
        assert isinstance(outcome, JobStarted)
        assert outcome.job.job_id == "job-42"
        assert outcome.job.status is JobStatus(status)

    def test_running_without_id(self) -> None:
        outcome = interpret_submit_response(_response(status="IN_PROGRESS"))
        assert outcome == SubmitFailure(reason="No job ID received from backend")

    @pytest.mark.parametrize("job_id", ["", "   ", "\t\n"])
    def test_running_with_blank_id(self, job_id: str) -> None:
        outcome = interpret_submit_response(_response(status="IN_PROGRESS", id=job_id))
        assert outcome == SubmitFailure(reason="No job ID received from backend")

    def test_running_id_is_stripped(self) -> None:
        outcome = interpret_submit_response(_response(status="IN_QUEUE", id=" job-42 "))
        assert isinstance(outcome, JobStarted)
        assert outcome.job.job_id == "job-42"

    def test_failed(self) -> None:
        outcome = interpret_submit_response(_response(status="FAILED", error="CUDA OOM"))
        assert isinstance(outcome, SubmitFailure)
        assert outcome.reason == "Generation failed on backend"
        assert outcome.detail == "CUDA OOM"
        assert outcome.capacity is False

    def test_cancelled(self) -> None:
        outcome = interpret_submit_response(_response(status="CANCELLED"))
        assert isinstance(outcome, SubmitFailure)
        assert outcome.reason == "Generation was cancelled"

    def test_unexpected_status(self) -> None:
        outcome = interpret_submit_response(_response(status="TIMED_OUT"))
        assert isinstance(outcome, SubmitFailure)
        assert outcome.reason == "Unexpected response status: TIMED_OUT"


class TestSubmitJob:
    """submit_job with a mocked backend."""

    @pytest.mark.asyncio()
    async def test_job_started(self) -> None:
        backend = _backend(_response(status="IN_QUEUE", id="job-1"))

        outcome = await submit_job(backend, SUBJECT, GARMENT, swap_type="Auto", config=CONFIG)

        assert isinstance(outcome, JobStarted)
        payload = backend.submit.await_args.args[0]
        assert payload["input"]["model_img"] == SUBJECT.url
        assert payload["input"]["cloth_img"] == GARMENT.url

    @pytest.mark.asyncio()
    async def test_immediate_completion(self) -> None:
        backend = _backend(_response(status="COMPLETED", output="https://cdn/out.jpg"))
        outcome = await submit_job(backend, SUBJECT, GARMENT, swap_type="Auto", config=CONFIG)
        assert outcome == ImmediateResult(image_url="https://cdn/out.jpg")

    @pytest.mark.asyncio()
    @pytest.mark.parametrize(
        ("status_code", "capacity"),
        [(429, True), (503, True), (500, False), (400, False)],
    )
    async def test_http_error_becomes_failure(self, status_code: int, capacity: bool) -> None:
        error = BackendError(
            "runpod", "Submit failed", status_code=status_code, body="upstream body"
        )
        backend = _backend(error=error)

        outcome = await submit_job(backend, SUBJECT, GARMENT, swap_type="Auto", config=CONFIG)

        assert isinstance(outcome, SubmitFailure)
        assert outcome.status_code == status_code
        assert outcome.detail == "upstream body"
        assert outcome.capacity is capacity

    @pytest.mark.asyncio()
    async def test_transport_error_is_capacity(self) -> None:
        backend = _backend(error=BackendError("runpod", "Connection error: reset"))
        outcome = await submit_job(backend, SUBJECT, GARMENT, swap_type="Auto", config=CONFIG)
        assert isinstance(outcome, SubmitFailure)
        assert outcome.capacity is True
        assert outcome.status_code is None

    @pytest.mark.asyncio()
    async def test_whole_call_deadline(self) -> None:
        async def never_returns(payload: object) -> BackendJobResponse:
            await asyncio.sleep(10)
            raise AssertionError("unreachable")

        backend = MagicMock()
        backend.submit = never_returns
        config = ProxyConfig(submit_timeout_seconds=0.01)

        outcome = await submit_job(backend, SUBJECT, GARMENT, swap_type="Auto", config=config)

        assert isinstance(outcome, SubmitFailure)
        assert outcome.capacity is True
        assert "timed out" in outcome.reason
