"""Upload images activity — stage both input images on a public host.

Walks the configured image host chain in order. Each host gets exactly
one attempt per upload; any failure (transport, HTTP status, missing
``success`` flag) falls through to the next host. A host without its
required credential is skipped without an attempt. This is an ordered
fallback chain, not a retry policy.

The two images of a request are uploaded concurrently and share no
state; both must succeed before the job can be submitted.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from vton_proxy.core.exceptions import TransientError
from vton_proxy.models.generation import HostRole, UploadedAsset
from vton_proxy.providers.base import HostUploadError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from vton_proxy.providers.base import ImageHost

logger = logging.getLogger("vton_proxy.activities.upload_images")


class UploadError(TransientError):
    """Raised when no image host accepted an upload.

    Attributes:
        attempts: ``(host, error)`` pairs for every host that was tried.
    """

    default_stage = "upload_images"
    default_code = "UPLOAD_FAILED"

    def __init__(
        self,
        message: str,
        *,
        attempts: list[tuple[str, str]] | None = None,
        correlation_id: str = "",
    ) -> None:
        self.attempts = attempts or []
        super().__init__(message, correlation_id=correlation_id)


async def upload_image(
    data: bytes,
    *,
    hosts: Sequence[ImageHost],
    label: str = "image",
    correlation_id: str = "",
) -> UploadedAsset:
    """Upload *data* to the first host in *hosts* that accepts it.

    Args:
        data: Raw image bytes.
        hosts: Ordered host chain; the first entry is the primary host.
        label: Name used in log lines (e.g. ``"userImage"``).
        correlation_id: Request correlation id for log context.

    Returns:
        The ``UploadedAsset`` from the first successful host.

    Raises:
        UploadError: If every configured host failed or was skipped.
    """
    attempts: list[tuple[str, str]] = []

    for position, host in enumerate(hosts):
        role = HostRole.PRIMARY if position == 0 else HostRole.FALLBACK

        if not host.is_configured:
            logger.debug(
                "Skipping unconfigured image host | host=%s | image=%s | request=%s",
                host.name,
                label,
                correlation_id,
            )
            continue

        try:
            url = await host.upload(data)
        except HostUploadError as exc:
            attempts.append((host.name, exc.message))
            logger.warning(
                "Image host failed, trying next | host=%s | image=%s | request=%s | error=%s",
                host.name,
                label,
                correlation_id,
                exc.message,
            )
            continue

        logger.info(
            "Image uploaded | host=%s | role=%s | image=%s | bytes=%d | request=%s",
            host.name,
            role.value,
            label,
            len(data),
            correlation_id,
        )
        return UploadedAsset(url=url, role=role, host=host.name)

    tried = ", ".join(name for name, _ in attempts) or "none configured"
    msg = f"All image upload services failed for {label} (tried: {tried})"
    raise UploadError(msg, attempts=attempts, correlation_id=correlation_id)


async def upload_pair(
    subject: bytes,
    garment: bytes,
    *,
    hosts: Sequence[ImageHost],
    correlation_id: str = "",
) -> tuple[UploadedAsset, UploadedAsset]:
    """Upload the subject and garment images concurrently.

    Returns:
        ``(subject_asset, garment_asset)``.

    Raises:
        UploadError: If either image could not be uploaded.
    """
    subject_asset, garment_asset = await asyncio.gather(
        upload_image(subject, hosts=hosts, label="userImage", correlation_id=correlation_id),
        upload_image(garment, hosts=hosts, label="clothingImage", correlation_id=correlation_id),
    )
    return subject_asset, garment_asset
