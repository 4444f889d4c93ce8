"""Pydantic models for payloads returned by external services.

The generation backend and the image hosts are loosely specified and
have been observed returning several shapes for the same information.
These models accept unknown keys and expose helper methods that
reconcile the shapes into a single value:

- ``BackendJobResponse``: Submit and status responses from the backend
- ``HostUploadResponse``: ImgBB / Imgur / file.io upload responses
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from vton_proxy.models.generation import JobStatus

# Keys under which an output entry may carry the generated image URL.
_IMAGE_KEYS: tuple[str, ...] = ("image", "image_url", "url")


class BackendJobResponse(BaseModel):
    """Submit or status response from the generation backend.

    Attributes:
        status: Raw status string (``"COMPLETED"``, ``"IN_PROGRESS"``, ...).
        id: Backend job identifier (present on asynchronous submissions).
        output: Job output; a list of entries, a single entry, or a URL string.
        error: Backend-side error text, when the job failed.
    """

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    status: str = ""
    id: str | None = None
    output: Any = None
    error: Any = None

    @property
    def job_status(self) -> JobStatus:
        return JobStatus.parse(self.status)

    def image_url(self) -> str:
        """Return the generated image URL, or ``""`` if none can be extracted.

        Accepted shapes::

            {"output": [{"image": "https://..."}]}
            {"output": ["https://..."]}
            {"output": {"image_url": "https://..."}}
            {"output": "https://..."}
        """
        output = self.output
        if isinstance(output, list):
            output = output[0] if output else None
        return _entry_url(output)


class HostUploadData(BaseModel):
    """``data`` section of an image host response."""

    model_config = ConfigDict(extra="allow")

    url: str = ""
    link: str = ""


class HostUploadResponse(BaseModel):
    """Upload response from an image hosting service.

    ImgBB answers ``{"success": true, "data": {"url": ...}}``, Imgur
    ``{"success": true, "data": {"link": ...}}`` and file.io
    ``{"success": true, "link": ...}``.
    """

    model_config = ConfigDict(extra="allow")

    success: bool = False
    data: HostUploadData = Field(default_factory=HostUploadData)
    link: str = ""

    def public_url(self) -> str:
        """Return the hosted URL, preferring ``data.url`` over ``data.link``."""
        return self.data.url or self.data.link or self.link


def _entry_url(entry: Any) -> str:
    """Extract an image URL from a single output entry."""
    if isinstance(entry, str):
        return entry.strip()
    if isinstance(entry, dict):
        for key in _IMAGE_KEYS:
            value = entry.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return ""
