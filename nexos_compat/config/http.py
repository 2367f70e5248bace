"""HTTP client configuration settings."""

from pydantic import BaseModel, Field


class HTTPSettings(BaseModel):
    """HTTP client configuration settings.

    These values are handed to httpx as-is; the compatibility layer itself
    never times out or retries a request.
    """

    timeout: float = Field(
        default=120.0,
        gt=0,
        description="Timeout in seconds passed to the httpx client",
    )

    verify: bool = Field(
        default=True,
        description="Verify TLS certificates of the gateway",
    )
