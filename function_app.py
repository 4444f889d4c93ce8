"""Azure Functions entry point — Virtual Try-On Generation Proxy.

This module registers the HTTP triggers using the Python v2 programming
model.

All business logic lives in the vton_proxy package. This file is purely
the wiring layer between Azure Functions bindings and application code.
"""

from __future__ import annotations

import json
import logging

import azure.functions as func

from vton_proxy.core.config import ProxyConfig
from vton_proxy.core.ingress import ProxyResponse, handle_generate, health_response
from vton_proxy.core.ratelimit import InMemoryRateLimiter

app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)

logger = logging.getLogger("vton_proxy.function_app")

# Loaded once per worker; invalid ranges fail the worker at startup.
config = ProxyConfig.from_env()
limiter = InMemoryRateLimiter(
    config.rate_limit_max_requests,
    config.rate_limit_window_seconds,
)

if not config.is_backend_configured:
    logger.warning("RUNPOD_API_KEY or RUNPOD_API_URL not set; /api/generate will return 500")


def to_http_response(response: ProxyResponse) -> func.HttpResponse:
    """Convert a transport-neutral ``ProxyResponse`` to an ``HttpResponse``."""
    if response.body is None:
        return func.HttpResponse(status_code=response.status_code, headers=response.headers)
    return func.HttpResponse(
        json.dumps(response.body),
        status_code=response.status_code,
        headers=response.headers,
        mimetype="application/json",
    )


# ---------------------------------------------------------------------------
# HTTP: Generate
# ---------------------------------------------------------------------------


@app.function_name("generate")
@app.route(
    route="generate",
    methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
)
async def generate(req: func.HttpRequest) -> func.HttpResponse:
    """Accept two images and return the generated try-on image URL.

    POST only; OPTIONS answers the CORS preflight and every other
    method is routed here so it can be answered with 405.
    """
    response = await handle_generate(req, config=config, limiter=limiter)
    return to_http_response(response)


# ---------------------------------------------------------------------------
# HTTP: Health
# ---------------------------------------------------------------------------


@app.function_name("health")
@app.route(route="health", methods=["GET"])
def health(req: func.HttpRequest) -> func.HttpResponse:
    """Liveness probe."""
    return to_http_response(health_response())
