"""Shared helper functions used across multiple modules.

Centralises correlation-id generation and client identification, which
both the ingress and the job submitter need.
"""

from __future__ import annotations

import secrets
from collections.abc import Mapping

# 8 random bytes -> 16 hex characters (64 bits of entropy).
_CORRELATION_BYTES = 8


def new_correlation_id(prefix: str = "") -> str:
    """Return an opaque identifier for log correlation or backend idempotency.

    Uses ``secrets.token_hex``. Uniqueness is probabilistic (64 random
    bits), not guaranteed; callers must not rely on it for anything
    stronger than correlation.

    Args:
        prefix: Optional prefix joined with ``-`` (e.g. ``"req"``).
    """
    token = secrets.token_hex(_CORRELATION_BYTES)
    return f"{prefix}-{token}" if prefix else token


def client_address(headers: Mapping[str, str], fallback: str = "unknown") -> str:
    """Identify the calling client for rate limiting.

    Azure Functions sits behind a front end, so the first
    ``X-Forwarded-For`` entry is preferred, then ``X-Client-IP``.
    Port suffixes (``1.2.3.4:5678``) are stripped from IPv4 addresses.
    """
    lowered = {str(k).lower(): str(v) for k, v in headers.items()}
    forwarded = lowered.get("x-forwarded-for", "")
    candidate = forwarded.split(",")[0].strip() if forwarded else ""
    if not candidate:
        candidate = lowered.get("x-client-ip", "").strip()
    if not candidate:
        return fallback
    if candidate.count(":") == 1:
        candidate = candidate.split(":", 1)[0]
    return candidate
