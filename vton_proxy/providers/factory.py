"""Provider factory — builds image hosts and the generation backend by name.

The factory maintains a registry of known image host adapters. New hosts
are registered by adding an entry to ``_HOST_REGISTRY`` or by calling
``register_image_host``.

Usage::

    from vton_proxy.providers.factory import build_host_chain

    hosts = build_host_chain(config, client)
    url = await hosts[0].upload(data)

The host chain order is read from the ``IMAGE_HOSTS`` environment variable
via ``ProxyConfig.image_hosts``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from vton_proxy.core.constants import FILEIO, IMGBB, IMGUR
from vton_proxy.providers.base import GenerationBackend, ImageHost, ProviderError

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from vton_proxy.core.config import ProxyConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Lazy-import host registry
# ---------------------------------------------------------------------------

# Each entry maps a host name to a callable that returns the adapter
# *class*, so adapter modules are only imported when selected.

_HOST_REGISTRY: dict[str, Callable[[], type[ImageHost]]] = {}


def _register_builtin_hosts() -> None:
    """Register the built-in image host adapters."""

    def _imgbb() -> type[ImageHost]:
        from vton_proxy.providers.imgbb import ImgBBHost

        return ImgBBHost

    def _imgur() -> type[ImageHost]:
        from vton_proxy.providers.imgur import ImgurHost

        return ImgurHost

    def _fileio() -> type[ImageHost]:
        from vton_proxy.providers.fileio import FileIOHost

        return FileIOHost

    _HOST_REGISTRY[IMGBB] = _imgbb
    _HOST_REGISTRY[IMGUR] = _imgur
    _HOST_REGISTRY[FILEIO] = _fileio


def _ensure_registry() -> None:
    """Initialise the host registry once (idempotent)."""
    if not _HOST_REGISTRY:
        _register_builtin_hosts()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def register_image_host(
    name: str,
    loader: Callable[[], type[ImageHost]],
) -> None:
    """Register a custom image host adapter.

    Args:
        name: Host name (e.g. ``"my_cdn"``).
        loader: A zero-argument callable that returns the adapter class.

    Raises:
        ValueError: If the name is empty.
    """
    if not name:
        msg = "Image host name must be non-empty"
        raise ValueError(msg)
    _ensure_registry()
    _HOST_REGISTRY[name] = loader
    logger.debug("Registered image host adapter: %s", name)


def get_image_host(
    name: str,
    config: ProxyConfig,
    client: httpx.AsyncClient,
) -> ImageHost:
    """Create and return an image host instance.

    Raises:
        ProviderError: If the named host is not registered.
    """
    _ensure_registry()

    loader = _HOST_REGISTRY.get(name)
    if loader is None:
        available = ", ".join(sorted(_HOST_REGISTRY))
        msg = f"Unknown image host: {name!r}. Available: {available}"
        raise ProviderError(provider=name, message=msg)

    return loader()(config, client)


def list_image_hosts() -> list[str]:
    """Return the names of all registered image host adapters."""
    _ensure_registry()
    return sorted(_HOST_REGISTRY)


def build_host_chain(config: ProxyConfig, client: httpx.AsyncClient) -> list[ImageHost]:
    """Instantiate the configured host chain in order (primary first)."""
    return [get_image_host(name, config, client) for name in config.image_hosts]


def get_backend(config: ProxyConfig, client: httpx.AsyncClient) -> GenerationBackend:
    """Return the generation backend adapter."""
    from vton_proxy.providers.runpod import RunPodBackend

    return RunPodBackend(config, client)
