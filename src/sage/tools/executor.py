from __future__ import annotations

import inspect
import logging
from typing import Any

from sage.tools.context import ToolContext
from sage.tools.registry import ToolRegistry
from sage.tools.results import ToolOutcome

logger = logging.getLogger(__name__)


class ToolExecutor:
    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry

    def execute(self, name: str, args: dict[str, Any], context: ToolContext) -> ToolOutcome:
        spec = self._registry.get(name)
        if spec is None:
            logger.warning("model requested unknown tool %r; skipping", name)
            return ToolOutcome.skipped()
        handler = spec.handler
        signature = inspect.signature(handler)
        params = signature.parameters.values()
        positional_params = [
            param
            for param in params
            if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD)
        ]
        has_varargs = any(param.kind is param.VAR_POSITIONAL for param in params)
        if has_varargs or len(positional_params) >= 2:
            outcome = handler(args, context)
        else:
            outcome = handler(args)
        if not isinstance(outcome, ToolOutcome):
            outcome = ToolOutcome.completed(outcome)
        return outcome

    def list_tools(self) -> list[str]:
        return [spec.name for spec in self._registry.list_tools()]

    def advertised(self) -> list[dict[str, Any]]:
        return self._registry.advertised()
