"""External collaborator adapters.

Implements the provider adapter pattern (Strategy pattern):
- ImageHost: Abstract base for image hosting services
- ImgBBHost / ImgurHost / FileIOHost: Concrete image hosts
- GenerationBackend: Abstract base for the generation service
- RunPodBackend: RunPod serverless endpoint

The image host chain is selected via configuration, enabling
zero-code-change host switching.
"""

from vton_proxy.providers.base import (
    BackendError,
    BackendStatusError,
    GenerationBackend,
    HostUploadError,
    ImageHost,
    ProviderError,
    StatusRoute,
)
from vton_proxy.providers.factory import (
    build_host_chain,
    get_backend,
    get_image_host,
    list_image_hosts,
    register_image_host,
)

__all__ = [
    "BackendError",
    "BackendStatusError",
    "GenerationBackend",
    "HostUploadError",
    "ImageHost",
    "ProviderError",
    "StatusRoute",
    "build_host_chain",
    "get_backend",
    "get_image_host",
    "list_image_hosts",
    "register_image_host",
]
