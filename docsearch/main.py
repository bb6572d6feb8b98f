"""Quart application exposing the documentation tools over HTTP."""
from pathlib import Path
from typing import Optional

import structlog
from quart import Quart, jsonify, request

from docsearch.rag.chunker import SectionChunker
from docsearch.rag.index import DocumentIndex
from docsearch.tools import build_registry

logger = structlog.get_logger()

ERROR_STATUS = {
    "not_found": 404,
    "invalid_input": 400,
    "timeout": 504,
    "failed": 500,
}


def create_app(
    index: DocumentIndex,
    docs_dir: Optional[Path] = None,
    chunker: Optional[SectionChunker] = None,
) -> Quart:
    """Build the app around an already initialized index.

    Args:
        index: Initialized document index shared by every request
        docs_dir: Documentation root for project lookups (default from config)
        chunker: Chunker for project lookups (default budgets from config)
    """
    app = Quart(__name__)
    registry = build_registry(index, docs_dir, chunker)

    @app.route("/api/health", methods=["GET"])
    async def health():
        """Report collection info."""
        return jsonify({"status": "ok", "collection": index.get_info()})

    @app.route("/api/tools", methods=["GET"])
    async def list_tools():
        """List tools with their JSON input schemas.

        Returns JSON:
        {
            "tools": [{"name": ..., "description": ..., "inputSchema": {...}}, ...]
        }
        """
        return jsonify({"tools": registry.describe_tools()})

    @app.route("/api/tools/<name>", methods=["POST"])
    async def call_tool(name: str):
        """Call a tool.

        Expects a JSON object of tool arguments, e.g. for search_documentation:
        {
            "query": "database migration rules",
            "type_filter": ["rule", "adr"],  // optional
            "max_results": 5                 // optional
        }

        Returns the tool output as JSON, or {"error": ...} with 400/404/500.
        """
        args = await request.get_json(silent=True)
        if args is None:
            args = {}
        if not isinstance(args, dict):
            return jsonify({"error": "Tool arguments must be a JSON object"}), 400

        logger.info("tool_call_received", tool=name, arg_keys=sorted(args))

        result = await registry.execute_tool(name, args)

        if not result.success:
            return jsonify({"error": result.error}), ERROR_STATUS.get(result.error_code, 500)

        return jsonify(result.data)

    return app
