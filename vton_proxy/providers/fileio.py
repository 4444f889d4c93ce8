"""file.io temporary host adapter.

Last-resort host: uploads the raw bytes as a multipart ``file`` part and
keeps them for one day. Not part of the default chain; enable it with
``IMAGE_HOSTS=imgbb,imgur,fileio``.
"""

from __future__ import annotations

import httpx

from vton_proxy.core.constants import FILEIO, FILEIO_UPLOAD_URL
from vton_proxy.providers.base import HostUploadError, ImageHost


class FileIOHost(ImageHost):
    """file.io adapter; hosted URL is returned at top-level ``link``."""

    name = FILEIO

    async def upload(self, data: bytes) -> str:
        files = {"file": ("image.jpg", data, "application/octet-stream")}
        try:
            response = await self._client.post(
                FILEIO_UPLOAD_URL,
                params={"expires": "1d"},
                files=files,
            )
        except httpx.HTTPError as exc:
            raise HostUploadError(self.name, f"Transport error: {exc}", retryable=True) from exc

        return self._read_public_url(response)
