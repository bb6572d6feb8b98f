"""Tools package: registry plus the documentation tools."""
from docsearch.tools.docs import build_registry
from docsearch.tools.registry import Tool, ToolRegistry, ToolResult

__all__ = ["build_registry", "Tool", "ToolResult", "ToolRegistry"]
