"""ImgBB image host adapter (primary host).

Uploads a base64-encoded image as a form field to the ImgBB v1 API.
Requires ``IMGBB_API_KEY``; without it the adapter reports itself as
unconfigured and the upload chain skips it.
"""

from __future__ import annotations

import base64
import logging

import httpx

from vton_proxy.core.constants import IMGBB, IMGBB_UPLOAD_URL
from vton_proxy.providers.base import HostUploadError, ImageHost

logger = logging.getLogger(__name__)


class ImgBBHost(ImageHost):
    """ImgBB adapter; hosted URL is returned at ``data.url``."""

    name = IMGBB

    @property
    def is_configured(self) -> bool:
        return bool(self._config.imgbb_api_key)

    async def upload(self, data: bytes) -> str:
        encoded = base64.b64encode(data).decode("ascii")
        try:
            response = await self._client.post(
                IMGBB_UPLOAD_URL,
                params={"key": self._config.imgbb_api_key},
                data={"image": encoded},
            )
        except httpx.HTTPError as exc:
            raise HostUploadError(self.name, f"Transport error: {exc}", retryable=True) from exc

        url = self._read_public_url(response)
        logger.debug("Uploaded %d bytes to ImgBB", len(data))
        return url
