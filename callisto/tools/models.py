"""
Tool Models - data structures for tool discovery and dispatch
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Tool:
    """
    A tool as presented to the model

    Attributes:
        name: Tool name (globally unique within a session)
        description: Human-readable description
        input_schema: Normalized JSON Schema for the arguments
        server_name: Owning tool server
    """
    name: str
    description: str
    input_schema: Dict[str, Any]
    server_name: str

    @property
    def required(self) -> List[str]:
        return list(self.input_schema.get("required") or [])

    def to_schema(self) -> Dict[str, Any]:
        """Model-facing schema (name, description, input_schema)."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


@dataclass
class ToolResult:
    """
    Result of a tool dispatch

    Attributes:
        tool_use_id: Id of the tool use this result answers
        content: Canonical string content
        is_error: Whether dispatch or execution failed
        data: Raw structured content, when the server returned any
    """
    tool_use_id: str
    content: str
    is_error: bool = False
    data: Optional[Any] = field(default=None, repr=False)
