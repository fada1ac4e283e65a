"""Model providers by name.

A provider turns the normalized turns plus the advertised tool schema into
one :class:`ModelReply`. Provider modules register a factory at import time;
factories take keyword overrides such as ``model`` or ``base_url``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from sage.config import Settings
from sage.core.types import ModelReply, ModelTurn


class Backend(Protocol):
    def chat(
        self,
        messages: list[ModelTurn],
        tools: list[dict[str, Any]],
        max_tokens: int = 512,
    ) -> ModelReply:
        ...


BackendFactory = Callable[..., Backend]

_BACKENDS: dict[str, BackendFactory] = {}


def register_backend(name: str, factory: BackendFactory) -> None:
    key = name.lower()
    if key in _BACKENDS:
        raise ValueError(f"Backend '{name}' is already registered")
    _BACKENDS[key] = factory


def get_backend(name: str, **overrides: Any) -> Backend:
    factory = _BACKENDS.get(name.lower())
    if factory is None:
        available = ", ".join(list_backends())
        raise ValueError(f"Unknown backend '{name}'. Available backends: {available}")
    # Unset overrides fall through to the provider's environment defaults.
    return factory(**{key: value for key, value in overrides.items() if value is not None})


def backend_for(settings: Settings, name: str | None = None, **overrides: Any) -> Backend:
    """Build the provider named explicitly, else the one ``settings`` selects."""
    return get_backend(name or settings.backend, **overrides)


def list_backends() -> list[str]:
    return sorted(_BACKENDS)
