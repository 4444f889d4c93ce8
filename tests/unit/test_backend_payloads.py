"""Tests for external payload validation models.

Verifies that the pydantic models tolerate unknown keys and reconcile
the response shapes observed from the generation backend and the image
hosts.
"""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError as PydanticValidationError

from vton_proxy.models.backend import BackendJobResponse, HostUploadResponse
from vton_proxy.models.generation import JobStatus

IMAGE = "https://cdn.example.com/result.jpg"


class TestBackendJobResponse:
    """Backend submit/status payloads."""

    @pytest.mark.parametrize(
        "output",
        [
            [{"image": IMAGE}],
            [{"image_url": IMAGE}],
            [{"url": IMAGE}],
            [IMAGE],
            {"image": IMAGE},
            {"image_url": IMAGE},
            IMAGE,
        ],
    )
    def test_image_url_shapes(self, output: Any) -> None:
        response = BackendJobResponse.model_validate({"status": "COMPLETED", "output": output})
        assert response.image_url() == IMAGE

    @pytest.mark.parametrize(
        "output",
        [None, [], [{}], [{"image": ""}], {"other": IMAGE}, 42, [None]],
    )
    def test_image_url_missing(self, output: Any) -> None:
        response = BackendJobResponse.model_validate({"status": "COMPLETED", "output": output})
        assert response.image_url() == ""

    def test_first_entry_wins(self) -> None:
        response = BackendJobResponse.model_validate(
            {"output": [{"image": IMAGE}, {"image": "https://other/2.jpg"}]}
        )
        assert response.image_url() == IMAGE

    def test_job_status_parsed(self) -> None:
        response = BackendJobResponse.model_validate({"status": "IN_QUEUE", "id": "abc"})
        assert response.job_status is JobStatus.IN_QUEUE

    def test_unknown_keys_tolerated(self) -> None:
        payload = {"id": "abc", "status": "IN_PROGRESS", "delayTime": 812, "workerId": "w1"}
        response = BackendJobResponse.model_validate(payload)
        assert response.id == "abc"

    def test_numeric_id_coerced_to_string(self) -> None:
        response = BackendJobResponse.model_validate({"id": 12345, "status": "IN_PROGRESS"})
        assert response.id == "12345"

    def test_empty_body_defaults(self) -> None:
        response = BackendJobResponse.model_validate({})
        assert response.status == ""
        assert response.job_status is JobStatus.UNKNOWN
        assert response.id is None

    def test_non_object_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            BackendJobResponse.model_validate(["COMPLETED"])


class TestHostUploadResponse:
    """Image host upload payloads."""

    def test_imgbb_shape(self) -> None:
        parsed = HostUploadResponse.model_validate(
            {"success": True, "status": 200, "data": {"url": IMAGE, "display_url": "x"}}
        )
        assert parsed.success is True
        assert parsed.public_url() == IMAGE

    def test_imgur_shape(self) -> None:
        parsed = HostUploadResponse.model_validate(
            {"success": True, "data": {"link": IMAGE, "id": "abc"}}
        )
        assert parsed.public_url() == IMAGE

    def test_fileio_shape(self) -> None:
        parsed = HostUploadResponse.model_validate({"success": True, "key": "k", "link": IMAGE})
        assert parsed.public_url() == IMAGE

    def test_data_url_preferred_over_link(self) -> None:
        parsed = HostUploadResponse.model_validate(
            {"success": True, "data": {"url": IMAGE, "link": "https://other"}}
        )
        assert parsed.public_url() == IMAGE

    def test_failure_shape(self) -> None:
        parsed = HostUploadResponse.model_validate(
            {"success": False, "data": {"error": "Rate limit"}}
        )
        assert parsed.success is False
        assert parsed.public_url() == ""
