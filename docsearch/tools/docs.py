"""Documentation tools: semantic search and per-project document listing."""
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from docsearch import config
from docsearch.rag.chunker import SectionChunker
from docsearch.rag.index import DocumentIndex, SearchOptions
from docsearch.rag.models import DocumentType
from docsearch.rag.processor import DocumentProcessor
from docsearch.tools.registry import Tool, ToolRegistry


class SearchDocumentationInput(BaseModel):
    """Input for the documentation search tool."""
    query: str = Field(
        ...,
        min_length=1,
        description="Natural language search query (e.g. 'authentication patterns', 'database migration rules')",
    )
    type_filter: Optional[List[DocumentType]] = Field(
        default=None,
        description="Only return these document types: adr, rfc, guide, rule, project",
    )
    project_filter: Optional[List[str]] = Field(
        default=None,
        description="Only return chunks of documents tagged with one of these projects",
    )
    max_results: int = Field(
        default=config.DEFAULT_MAX_RESULTS,
        ge=1,
        le=config.MAX_RESULTS_LIMIT,
        description="Maximum number of chunks to return",
    )


class SearchDocumentationOutput(BaseModel):
    """Output from the documentation search tool."""
    results: List[Dict[str, Any]]


class ProjectInfoInput(BaseModel):
    """Input for the project info tool."""
    project_name: str = Field(
        ...,
        min_length=1,
        description="Directory name of the project under projects/ (e.g. 'billing-service')",
    )


class ProjectInfoOutput(BaseModel):
    """Output from the project info tool."""
    project_name: str
    documents: List[Dict[str, Any]]


def build_registry(
    index: DocumentIndex,
    docs_dir: Optional[Path] = None,
    chunker: Optional[SectionChunker] = None,
) -> ToolRegistry:
    """Registry with the documentation tools bound to one index and docs tree.

    Args:
        index: Initialized document index used for search
        docs_dir: Documentation root holding projects/ (default from config)
        chunker: Chunker for project documents (default budgets from config)

    Raises:
        ConfigurationError: If the default chunk budgets are invalid
    """
    docs_dir = docs_dir or config.DOCS_DIR
    chunker = chunker or SectionChunker()
    registry = ToolRegistry()

    async def search_documentation(params: SearchDocumentationInput) -> SearchDocumentationOutput:
        options = SearchOptions(
            max_results=params.max_results,
            type_filter=frozenset(params.type_filter or ()),
            project_filter=frozenset(params.project_filter or ()),
        )
        results = await index.search(params.query, options)
        return SearchDocumentationOutput(results=[result.to_dict() for result in results])

    async def get_project_info_by_name(params: ProjectInfoInput) -> ProjectInfoOutput:
        documents = await DocumentProcessor(chunker=chunker).process_project(docs_dir, params.project_name)
        return ProjectInfoOutput(
            project_name=params.project_name,
            documents=[document.to_dict() for document in documents],
        )

    registry.register(Tool(
        name="search_documentation",
        description=(
            "Search the documentation repository for architectural decisions (ADRs), "
            "RFCs, guides, rules and project overviews relevant to a natural "
            "language query."
        ),
        input_model=SearchDocumentationInput,
        output_model=SearchDocumentationOutput,
        handler=search_documentation,
    ))

    registry.register(Tool(
        name="get_project_info_by_name",
        description=(
            "Retrieve every document of one project (project.md, stack notes, "
            "ADRs, RFCs, guides and rules in its directory)."
        ),
        input_model=ProjectInfoInput,
        output_model=ProjectInfoOutput,
        handler=get_project_info_by_name,
    ))

    return registry
