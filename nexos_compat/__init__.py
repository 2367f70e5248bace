"""Compatibility layer for OpenAI-style clients talking to the nexos.ai gateway."""

from ._version import __version__
from .client import create_nexos_client
from .dispatch import RequestPlan, plan_request
from .streaming import StreamFix
from .transport import NexosTransport


__all__ = [
    "NexosTransport",
    "RequestPlan",
    "StreamFix",
    "__version__",
    "create_nexos_client",
    "plan_request",
]
