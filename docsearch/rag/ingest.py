"""Ingest pipeline for indexing a documentation tree.

Orchestrates:
- Document processing (walk, parse, chunk)
- Collection reset
- One batched upload of every chunk
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import structlog

from docsearch import config
from docsearch.rag.index import DocumentIndex
from docsearch.rag.models import Document, flatten_chunks
from docsearch.rag.processor import DocumentProcessor

logger = structlog.get_logger()


@dataclass(frozen=True)
class DocumentSummary:
    """Per-document line of an indexing report."""

    title: str
    doc_type: str
    chunk_count: int
    file_path: str


@dataclass
class IndexReport:
    """Outcome of one indexing run."""

    docs_dir: str
    stats: Dict[str, int]
    collection: Dict[str, object] = field(default_factory=dict)
    documents: List[DocumentSummary] = field(default_factory=list)

    @property
    def chunk_count(self) -> int:
        return sum(summary.chunk_count for summary in self.documents)


class IngestPipeline:
    """Rebuilds a collection from a documentation directory."""

    def __init__(
        self,
        index: DocumentIndex,
        docs_dir: Optional[Path] = None,
        processor: Optional[DocumentProcessor] = None,
    ):
        """Initialize the ingest pipeline.

        Args:
            index: Initialized document index to write to
            docs_dir: Documentation root (default from config)
            processor: Document processor (default chunking from config)
        """
        self.index = index
        self.docs_dir = docs_dir or config.DOCS_DIR
        self.processor = processor or DocumentProcessor()

    async def run(self) -> IndexReport:
        """Process the tree, reset the collection and upload all chunks.

        An empty tree leaves the collection untouched. Upload failures
        propagate; nothing is retried.

        Raises:
            FileNotFoundError: If the docs directory doesn't exist
            IndexNotInitializedError: If the index was not initialized
            EmbeddingError: If embedding fails
        """
        logger.info("ingest_started", docs_dir=str(self.docs_dir))

        documents = await self.processor.process_documents(self.docs_dir)
        chunks = flatten_chunks(documents)

        report = IndexReport(
            docs_dir=str(self.docs_dir),
            stats=dict(self.processor.stats),
            documents=[_summarize(document) for document in documents],
        )

        if not chunks:
            logger.warning("no_chunks_to_index", docs_dir=str(self.docs_dir))
            return report

        await self.index.reset()
        await self.index.add_chunks(chunks)

        report.collection = self.index.get_info()

        logger.info("ingest_completed", chunk_count=len(chunks), **report.stats)

        return report


def _summarize(document: Document) -> DocumentSummary:
    return DocumentSummary(
        title=document.metadata.title,
        doc_type=document.metadata.doc_type.value,
        chunk_count=len(document.chunks),
        file_path=document.metadata.file_path,
    )
