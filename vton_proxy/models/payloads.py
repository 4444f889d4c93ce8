"""Typed payload schemas for the proxy's JSON contracts.

These ``TypedDict`` definitions make the inbound response bodies and
the backend submit payload explicit so that pyright catches key
mismatches at analysis time.

Usage::

    from vton_proxy.models.payloads import SubmitPayload

    payload: SubmitPayload = {"input": {...}}
"""

from __future__ import annotations

from typing import NotRequired, TypedDict

# ---------------------------------------------------------------------------
# Backend submit payload
# ---------------------------------------------------------------------------


class SubmitInput(TypedDict):
    """``input`` section of the backend submit request."""

    request_id: str
    model_img: str
    cloth_img: str
    swap_type: str
    output_format: str
    output_quality: int
    premium_user: NotRequired[bool]


class SubmitPayload(TypedDict):
    """Body of ``POST RUNPOD_API_URL``."""

    input: SubmitInput


# ---------------------------------------------------------------------------
# Inbound response bodies
# ---------------------------------------------------------------------------


class SuccessBody(TypedDict):
    """``/api/generate`` success response."""

    success: bool
    imageUrl: str  # noqa: N815


class ErrorBody(TypedDict):
    """``/api/generate`` failure response."""

    error: str
    message: str
    requestId: NotRequired[str]  # noqa: N815
    details: NotRequired[str]


class HealthBody(TypedDict):
    """``/api/health`` response."""

    status: str
    service: str
    timestamp: str
    secure: bool
