"""Shared proxy constants — single source of truth.

Centralises backend status strings, external endpoint URLs, field names,
and response headers that would otherwise be duplicated across the
ingress, provider adapters, and activities.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Inbound form fields
# ---------------------------------------------------------------------------

FIELD_USER_IMAGE: str = "userImage"
FIELD_CLOTHING_IMAGE: str = "clothingImage"
FIELD_SWAP_TYPE: str = "swapType"

DEFAULT_SWAP_TYPE: str = "Auto"

# ---------------------------------------------------------------------------
# Generation backend (RunPod serverless)
# ---------------------------------------------------------------------------

BACKEND_NAME: str = "runpod"

STATUS_COMPLETED: str = "COMPLETED"
STATUS_IN_PROGRESS: str = "IN_PROGRESS"
STATUS_IN_QUEUE: str = "IN_QUEUE"
STATUS_FAILED: str = "FAILED"
STATUS_CANCELLED: str = "CANCELLED"

SUBMIT_SUFFIXES: tuple[str, ...] = ("/runsync", "/run")
"""Suffixes stripped from the submit URL to derive the status base URL."""

DEFAULT_OUTPUT_FORMAT: str = "jpg"
DEFAULT_OUTPUT_QUALITY: int = 90

# ---------------------------------------------------------------------------
# Poll loop defaults (seconds)
# ---------------------------------------------------------------------------

DEFAULT_POLL_INITIAL_INTERVAL_SECONDS: float = 10.0
DEFAULT_POLL_MAX_INTERVAL_SECONDS: float = 30.0
DEFAULT_POLL_BACKOFF_FACTOR: float = 1.2
DEFAULT_POLL_TIMEOUT_SECONDS: float = 300.0

DEFAULT_HTTP_TIMEOUT_SECONDS: float = 30.0
DEFAULT_UPLOAD_TIMEOUT_SECONDS: float = 90.0
DEFAULT_SUBMIT_TIMEOUT_SECONDS: float = 60.0

# ---------------------------------------------------------------------------
# Image hosts
# ---------------------------------------------------------------------------

IMGBB: str = "imgbb"
IMGUR: str = "imgur"
FILEIO: str = "fileio"

DEFAULT_IMAGE_HOSTS: tuple[str, ...] = (IMGBB, IMGUR)

IMGBB_UPLOAD_URL: str = "https://api.imgbb.com/1/upload"
IMGUR_UPLOAD_URL: str = "https://api.imgur.com/3/image"
FILEIO_UPLOAD_URL: str = "https://file.io/"

IMGUR_PUBLIC_CLIENT_ID: str = "8e5b0e2b5f8c9a3"
"""Anonymous Imgur client id used when ``IMGUR_CLIENT_ID`` is not set."""

# ---------------------------------------------------------------------------
# Inbound limits
# ---------------------------------------------------------------------------

DEFAULT_MAX_FILE_BYTES: int = 10 * 1024 * 1024
DEFAULT_RATE_LIMIT_MAX_REQUESTS: int = 5
DEFAULT_RATE_LIMIT_WINDOW_SECONDS: float = 60.0

# ---------------------------------------------------------------------------
# Response headers
# ---------------------------------------------------------------------------

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

REQUEST_ID_HEADER: str = "X-Request-Id"

SERVICE_NAME: str = "Virtual Try-On API (Secure)"
