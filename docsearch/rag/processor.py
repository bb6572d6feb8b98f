"""Document processing: markdown files in, ordered chunks out.

Orchestrates:
- Directory walking and file filtering
- Front matter and metadata extraction
- Document type and id inference
- Section extraction and chunking
"""
import asyncio
import os
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import structlog

from docsearch.errors import FrontMatterError, ProjectNotFoundError
from docsearch.rag.chunker import SectionChunker
from docsearch.rag.md_parser import MarkdownParser
from docsearch.rag.models import (
    Chunk,
    ChunkDraft,
    Document,
    DocumentMetadata,
    DocumentType,
    flatten_chunks,
)

logger = structlog.get_logger()

PathLike = Union[str, Path]

# File name suffix -> type; checked before directory conventions
SUFFIX_TYPES: Tuple[Tuple[str, DocumentType], ...] = (
    (".adr.md", DocumentType.ADR),
    (".rfc.md", DocumentType.RFC),
    (".guide.md", DocumentType.GUIDE),
    (".rules.md", DocumentType.RULE),
)

DIRECTORY_TYPES: Tuple[Tuple[str, DocumentType], ...] = (
    ("/adr/", DocumentType.ADR),
    ("/rfc/", DocumentType.RFC),
    ("/guides/", DocumentType.GUIDE),
    ("/rules/", DocumentType.RULE),
    ("/projects/", DocumentType.PROJECT),
)

DEFAULT_TYPE = DocumentType.GUIDE
MARKDOWN_SUFFIX = ".md"


def is_eligible_file(name: str) -> bool:
    """Markdown files only; a leading underscore marks a partial."""
    return name.endswith(MARKDOWN_SUFFIX) and not name.startswith("_")


class DocumentProcessor:
    """Turns a tree of markdown documents into chunked Document objects."""

    def __init__(
        self,
        chunker: Optional[SectionChunker] = None,
        parser: Optional[MarkdownParser] = None,
        base_dir: Optional[Path] = None,
    ):
        """Initialize the processor.

        Args:
            chunker: Section chunker (default budgets from config)
            parser: Markdown parser
            base_dir: Directory document ids are relative to (default: cwd at call time)
        """
        self.chunker = chunker or SectionChunker()
        self.parser = parser or MarkdownParser()
        self.base_dir = base_dir

        self.stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {
            "files_processed": 0,
            "files_skipped": 0,
            "files_failed": 0,
            "chunks_created": 0,
        }

    @staticmethod
    def infer_document_type(file_path: PathLike) -> DocumentType:
        """Infer the document type from file name, then directory conventions."""
        posix_path = Path(os.path.abspath(file_path)).as_posix()
        file_name = posix_path.rsplit("/", 1)[-1]

        for suffix, doc_type in SUFFIX_TYPES:
            if file_name.endswith(suffix):
                return doc_type

        for segment, doc_type in DIRECTORY_TYPES:
            if segment in posix_path:
                return doc_type

        return DEFAULT_TYPE

    def generate_document_id(self, file_path: PathLike) -> str:
        """Stable id: path relative to base_dir, separators as '_', no .md."""
        base_dir = self.base_dir if self.base_dir is not None else Path.cwd()
        relative = os.path.relpath(file_path, base_dir)
        if relative.endswith(MARKDOWN_SUFFIX):
            relative = relative[: -len(MARKDOWN_SUFFIX)]
        return relative.replace(os.sep, "_").replace("/", "_")

    def build_metadata(
        self, file_path: PathLike, front_matter: Dict[str, Any]
    ) -> DocumentMetadata:
        """Document metadata from front matter with path-based fallbacks.

        Raises:
            FrontMatterError: If `related` is present but not a mapping
        """
        related_raw = front_matter.get("related") or {}
        if not isinstance(related_raw, dict):
            raise FrontMatterError("'related' must be a mapping of kind -> references")

        related = {str(kind): _string_list(refs) for kind, refs in related_raw.items()}
        projects = _unique(related.get("projects", ()) + _string_list(front_matter.get("projects")))

        title = front_matter.get("title") or front_matter.get("name")
        if not title:
            title = Path(file_path).name[: -len(MARKDOWN_SUFFIX)]

        status = front_matter.get("status")

        return DocumentMetadata(
            title=_to_text(title),
            doc_type=self.infer_document_type(file_path),
            tags=_string_list(front_matter.get("tags")),
            projects=projects,
            status=None if status is None else _to_text(status),
            file_path=str(file_path),
            related=related,
        )

    def process_content(self, file_path: PathLike, content: str) -> Optional[Document]:
        """Build a Document from raw file content.

        Args:
            file_path: Path the content was read from
            content: Raw file content (front matter + markdown body)

        Returns:
            Document, or None if the body is empty

        Raises:
            FrontMatterError: If the front matter cannot be parsed
        """
        front_matter, body = self.parser.parse_text(content)
        body = body.strip()

        if not body:
            return None

        document_id = self.generate_document_id(file_path)
        metadata = self.build_metadata(file_path, front_matter)

        drafts: List[ChunkDraft] = []
        for section in self.parser.extract_sections(body):
            drafts.extend(self.chunker.chunk_section(section, len(drafts)))

        chunks = tuple(
            draft.finalize(document_id, metadata, len(drafts)) for draft in drafts
        )

        return Document(id=document_id, content=body, metadata=metadata, chunks=chunks)

    async def process_file(self, file_path: Path) -> Optional[Document]:
        """Read and process a single markdown file.

        Raises:
            OSError: If the file cannot be read
            UnicodeDecodeError: If the file is not UTF-8
            FrontMatterError: If the front matter cannot be parsed
        """
        content = await asyncio.to_thread(file_path.read_text, encoding="utf-8")
        document = self.process_content(file_path, content)

        if document is None:
            logger.info("document_skipped_empty", path=str(file_path))
            return None

        logger.debug(
            "document_processed",
            path=str(file_path),
            document_id=document.id,
            doc_type=document.metadata.doc_type.value,
            chunk_count=len(document.chunks),
        )
        return document

    async def process_documents(self, docs_path: PathLike) -> List[Document]:
        """Process every eligible markdown file under docs_path.

        Files that fail to process are logged and skipped.

        Raises:
            FileNotFoundError: If docs_path is not a directory
        """
        root = Path(docs_path)
        if not await asyncio.to_thread(root.is_dir):
            raise FileNotFoundError(f"Documents directory not found: {root}")

        self.stats = self._empty_stats()
        documents: List[Document] = []
        await self._process_directory(root, documents)

        logger.info("documents_processed", docs_path=str(root), **self.stats)

        return documents

    async def process_documents_to_chunks(self, docs_path: PathLike) -> List[Chunk]:
        """Process a tree and return all chunks as one flat list."""
        documents = await self.process_documents(docs_path)
        return flatten_chunks(documents)

    async def process_project(self, docs_path: PathLike, project_name: str) -> List[Document]:
        """Process the documents of one project under <docs_path>/projects/<name>.

        Raises:
            ProjectNotFoundError: If the project has no project.md
        """
        if not project_name or project_name in (".", "..") or "/" in project_name or os.sep in project_name:
            raise ProjectNotFoundError(f"Project not found: {project_name}")

        project_path = Path(docs_path) / "projects" / project_name
        if not await asyncio.to_thread((project_path / "project.md").is_file):
            raise ProjectNotFoundError(f"Project not found: {project_name}")

        return await self.process_documents(project_path)

    async def _process_directory(self, dir_path: Path, documents: List[Document]) -> None:
        entries = await asyncio.to_thread(_list_directory, dir_path)

        for entry, is_dir in entries:
            if is_dir:
                await self._process_directory(entry, documents)
                continue

            if not is_eligible_file(entry.name):
                continue

            try:
                document = await self.process_file(entry)
            except Exception as e:
                logger.warning(
                    "document_processing_failed",
                    path=str(entry),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                self.stats["files_failed"] += 1
                continue

            if document is None:
                self.stats["files_skipped"] += 1
                continue

            documents.append(document)
            self.stats["files_processed"] += 1
            self.stats["chunks_created"] += len(document.chunks)


def _list_directory(dir_path: Path) -> List[Tuple[Path, bool]]:
    # Sorted so repeated runs visit files in the same order
    return [(entry, entry.is_dir()) for entry in sorted(dir_path.iterdir(), key=lambda p: p.name)]


def _to_text(value: Any) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _unique(values: Tuple[str, ...]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def _string_list(value: Any) -> Tuple[str, ...]:
    """Front matter list (or single scalar) as a de-duplicated tuple of strings."""
    if value is None:
        return ()
    if isinstance(value, (list, tuple, set)):
        return _unique(tuple(_to_text(item) for item in value if item is not None))
    return (_to_text(value),)
