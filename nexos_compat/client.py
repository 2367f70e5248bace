"""HTTP client factory for the gateway."""

from typing import Any

import httpx
import structlog

from nexos_compat.config.settings import Settings, get_settings

from .transport import NexosTransport


logger = structlog.get_logger(__name__)


def create_nexos_client(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    **kwargs: Any,
) -> httpx.AsyncClient:
    """Create an ``httpx.AsyncClient`` that talks to the gateway through
    ``NexosTransport``.

    Args:
        settings: Settings to use, defaults to ``get_settings()``
        transport: Inner transport wrapped by ``NexosTransport``; defaults to
            ``httpx.AsyncHTTPTransport``
        **kwargs: Additional httpx.AsyncClient arguments

    Returns:
        Configured httpx.AsyncClient instance
    """
    settings = settings or get_settings()

    if transport is None:
        transport = httpx.AsyncHTTPTransport(verify=settings.http.verify)

    headers = dict(kwargs.pop("headers", None) or {})
    if settings.api_key is not None:
        headers.setdefault(
            "Authorization", f"Bearer {settings.api_key.get_secret_value()}"
        )

    client_config: dict[str, Any] = {
        "base_url": settings.base_url,
        "timeout": settings.http.timeout,
        "headers": headers,
        "transport": NexosTransport(transport),
        **kwargs,
    }

    logger.debug(
        "nexos_client_created",
        base_url=settings.base_url,
        has_api_key=settings.api_key is not None,
    )
    return httpx.AsyncClient(**client_config)
