"""
Tool registry: the fixed catalog advertised to the model and the dispatcher
that runs a requested tool locally.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable

from ..errors import InvalidToolInputError, UnknownToolError
from . import compaction, compliance, council, inspection, standards, timeline, weather
from .base import ToolDefinition

LOGGER = logging.getLogger(__name__)


class ToolRegistry:
    def __init__(self, tools: Iterable[ToolDefinition] = ()):
        self._tools: dict[str, ToolDefinition] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: ToolDefinition) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def list_tools(self) -> list[ToolDefinition]:
        """All tools in registration order."""
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)

    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def validate_input(self, name: str, tool_input: dict[str, Any]) -> list[str]:
        """
        Names of required fields missing from tool_input.

        Raises:
            UnknownToolError: If no tool has this name
        """
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(name)
        return tool.missing_fields(tool_input)

    def execute(self, name: str, tool_input: dict[str, Any]) -> dict[str, Any]:
        """
        Run a tool by name.

        Only presence of required fields is validated. Exceptions raised by
        the handler are returned as {"error": ...} so the conversation can
        continue.

        Raises:
            UnknownToolError: If no tool has this name (no handler is called)
            InvalidToolInputError: If required fields are missing
        """
        missing = self.validate_input(name, tool_input)
        if missing:
            raise InvalidToolInputError(name, missing)

        tool = self._tools[name]
        try:
            return tool.handler(tool_input)
        except Exception as e:
            LOGGER.warning("Tool %s failed: %s", name, e)
            return {"error": f"Tool execution failed: {e}"}

    def to_api(self) -> list[dict[str, Any]]:
        return [tool.to_api() for tool in self._tools.values()]


def default_registry() -> ToolRegistry:
    """A fresh registry holding the full SiteProof tool catalog."""
    return ToolRegistry(
        [
            *standards.TOOLS,
            *compaction.TOOLS,
            *council.TOOLS,
            weather.CHECK_WEATHER_RESTRICTIONS,
            compliance.VERIFY_COMPLIANCE,
            weather.MAKE_WEATHER_DECISION,
            *timeline.TOOLS,
            compliance.CALCULATE_TEST_FREQUENCY,
            weather.GET_CURING_REQUIREMENTS,
            *inspection.TOOLS,
        ]
    )
