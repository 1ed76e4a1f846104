from .base import ToolDefinition
from .registry import ToolRegistry, default_registry

__all__ = ["ToolDefinition", "ToolRegistry", "default_registry"]
