"""
airouter Backend Clients

Contract for the text generation services the router dispatches to.
"""

from .base import BaseBackend, BackendRegistry
from .stub_backend import StubBackend

__all__ = [
    "BaseBackend",
    "BackendRegistry",
    "StubBackend",
]
