"""Imgur image host adapter (fallback host).

Uploads a base64-encoded image as JSON using an anonymous ``Client-ID``.
Less reliable from server environments than ImgBB, which is why it sits
behind it in the default chain.
"""

from __future__ import annotations

import base64
import logging

import httpx

from vton_proxy.core.constants import IMGUR, IMGUR_UPLOAD_URL
from vton_proxy.providers.base import HostUploadError, ImageHost

logger = logging.getLogger(__name__)


class ImgurHost(ImageHost):
    """Imgur adapter; hosted URL is returned at ``data.link``."""

    name = IMGUR

    @property
    def is_configured(self) -> bool:
        return bool(self._config.imgur_client_id)

    async def upload(self, data: bytes) -> str:
        payload = {"image": base64.b64encode(data).decode("ascii"), "type": "base64"}
        headers = {"Authorization": f"Client-ID {self._config.imgur_client_id}"}
        try:
            response = await self._client.post(IMGUR_UPLOAD_URL, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise HostUploadError(self.name, f"Transport error: {exc}", retryable=True) from exc

        url = self._read_public_url(response)
        logger.debug("Uploaded %d bytes to Imgur", len(data))
        return url
