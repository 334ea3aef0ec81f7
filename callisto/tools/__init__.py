"""Tool registry, schema normalization and dispatch"""

from .models import Tool, ToolResult
from .schemas import SCHEMA_OVERRIDES, adapt_arguments, empty_schema, normalize_schema
from .registry import ToolRegistry
from .executor import ToolDispatcher, canonicalize_content, requires_confirmation

__all__ = [
    "Tool",
    "ToolResult",
    "SCHEMA_OVERRIDES",
    "adapt_arguments",
    "empty_schema",
    "normalize_schema",
    "ToolRegistry",
    "ToolDispatcher",
    "canonicalize_content",
    "requires_confirmation",
]
