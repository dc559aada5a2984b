"""Adapters — bindings for the external ssh and scp tools.

Public re-exports for convenient access.
"""

from diskcompat.adapters.base import Adapter, ExecutionContext
from diskcompat.adapters.mock import MockAdapter
from diskcompat.adapters.registry import AdapterRegistry, default_registry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
    "default_registry",
]
