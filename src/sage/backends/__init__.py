"""Model provider implementations."""

from .fake import FakeBackend
from .llama_server import LlamaServerBackend
from .registry import Backend, backend_for, get_backend, list_backends, register_backend
from .workers_ai import WorkersAIBackend

__all__ = [
    "Backend",
    "FakeBackend",
    "LlamaServerBackend",
    "WorkersAIBackend",
    "backend_for",
    "get_backend",
    "list_backends",
    "register_backend",
]
