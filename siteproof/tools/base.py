"""Tool definition shared by the registry and the model request builder."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

ToolHandler = Callable[[dict[str, Any]], dict[str, Any]]


@dataclass(frozen=True)
class ToolDefinition:
    """A named local function the model may ask us to run."""
    name: str
    description: str
    input_schema: dict[str, Any]
    handler: ToolHandler = field(compare=False, repr=False)

    @property
    def required(self) -> list[str]:
        return list(self.input_schema.get("required", []))

    def missing_fields(self, tool_input: dict[str, Any]) -> list[str]:
        """Required fields absent from tool_input, in schema order."""
        return [name for name in self.required if name not in tool_input]

    def to_api(self) -> dict[str, Any]:
        """Messages API tool entry (the handler stays local)."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }
