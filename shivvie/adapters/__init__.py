"""Adapters — bindings for the external tools the engine drives.

Public re-exports for convenient access.
"""

from shivvie.adapters.base import Adapter
from shivvie.adapters.toolchain import Toolchain

__all__ = [
    "Adapter",
    "Toolchain",
]
