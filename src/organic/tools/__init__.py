"""Tool abstractions and registries."""

from .base import Tool, ToolContext, ToolDescriptor, ToolResult
from .builtin import CommandTool, WorkspaceTool, register_builtin_tools
from .registry import ToolRegistry

__all__ = [
    "Tool",
    "ToolContext",
    "ToolDescriptor",
    "ToolResult",
    "ToolRegistry",
    "WorkspaceTool",
    "CommandTool",
    "register_builtin_tools",
]
