"""Tool registry for MCP-style tool calling.

Provides a dataclass-based tool system where clients call tools by name
with JSON arguments validated against pydantic models.
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog
from pydantic import BaseModel, ValidationError

from docsearch.errors import ProjectNotFoundError

logger = structlog.get_logger()

DEFAULT_TOOL_TIMEOUT = 60.0


@dataclass
class Tool:
    """Tool definition with input/output schemas and handler."""
    name: str
    description: str
    input_model: type[BaseModel]
    output_model: type[BaseModel]
    handler: Callable[[BaseModel], Awaitable[BaseModel]]


@dataclass
class ToolResult:
    """Result of a tool execution.

    error_code is one of "not_found", "invalid_input", "timeout" or
    "failed" when success is False.
    """
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


class ToolRegistry:
    """Registry for available tools."""

    def __init__(self, timeout: float = DEFAULT_TOOL_TIMEOUT):
        self.tools: Dict[str, Tool] = {}
        self._timeout = timeout

    def register(self, tool: Tool) -> None:
        """Register a tool."""
        self.tools[tool.name] = tool
        logger.debug("tool_registered", tool_name=tool.name)

    def get_tool(self, name: str) -> Optional[Tool]:
        """Get a tool by name."""
        return self.tools.get(name)

    def list_tools(self) -> List[Tool]:
        """List all registered tools."""
        return list(self.tools.values())

    def describe_tools(self) -> List[Dict[str, Any]]:
        """Tool names, descriptions and JSON input schemas."""
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "inputSchema": tool.input_model.model_json_schema(),
            }
            for tool in self.list_tools()
        ]

    async def execute_tool(self, tool_name: str, args: Dict[str, Any]) -> ToolResult:
        """Execute a tool with the given arguments.

        Args:
            tool_name: Name of the tool to execute
            args: Arguments to pass to the tool

        Returns:
            ToolResult with success status and data or error
        """
        tool = self.get_tool(tool_name)

        if not tool:
            logger.error("tool_not_found", tool_name=tool_name)
            return ToolResult(
                success=False, error=f"Unknown tool: {tool_name}", error_code="not_found"
            )

        try:
            validated_input = tool.input_model(**args)
        except ValidationError as e:
            logger.warning("tool_input_invalid", tool_name=tool_name, error=str(e))
            return ToolResult(success=False, error=str(e), error_code="invalid_input")

        try:
            async with asyncio.timeout(self._timeout):
                result = await tool.handler(validated_input)

            result_dict = result.model_dump(mode="json")

            logger.info(
                "tool_executed",
                tool_name=tool_name,
                success=True,
                result_preview=str(result_dict)[:100],
            )

            return ToolResult(success=True, data=result_dict)

        except ProjectNotFoundError as e:
            logger.warning("tool_target_not_found", tool_name=tool_name, error=str(e))
            return ToolResult(success=False, error=str(e), error_code="not_found")

        except TimeoutError:
            logger.error("tool_timeout", tool_name=tool_name, timeout=self._timeout)
            return ToolResult(
                success=False,
                error=f"Tool execution timeout after {self._timeout}s",
                error_code="timeout",
            )

        except Exception as e:
            logger.exception("tool_execution_failed", tool_name=tool_name, error=str(e))
            return ToolResult(
                success=False, error=f"Tool execution failed: {e}", error_code="failed"
            )
