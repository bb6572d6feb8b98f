"""Document index: the single handle for storing and searching chunks.

One DocumentIndex is constructed and initialized at process start and then
passed to whatever needs to search (tool registry, web app, CLI).
"""
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional

import structlog

from docsearch import config
from docsearch.db import ChunkDatabase
from docsearch.errors import DuplicateChunkError, IndexNotInitializedError
from docsearch.llm_client import OllamaClient
from docsearch.rag.models import Chunk, DocumentType
from docsearch.rag.processor import DocumentProcessor
from docsearch.rag.store_faiss import FAISSVectorStore

logger = structlog.get_logger()


@dataclass(frozen=True)
class SearchOptions:
    """Result count and metadata filters for a search."""

    max_results: int = config.DEFAULT_MAX_RESULTS
    type_filter: FrozenSet[DocumentType] = field(default_factory=frozenset)
    project_filter: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        if self.max_results < 1:
            raise ValueError(f"max_results must be at least 1, got {self.max_results}")

    @property
    def has_filters(self) -> bool:
        return bool(self.type_filter or self.project_filter)


@dataclass(frozen=True)
class SearchResult:
    """A retrieved chunk.

    relevance_score is 1 - distance. With the cosine distance used by
    FAISSVectorStore it lies in [-1, 1]; it is not clamped.
    """

    content: str
    metadata: Dict[str, str]
    relevance_score: float

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready view with list metadata decoded."""
        return {
            "document": self.content,
            "metadata": {
                "title": self.metadata.get("title", ""),
                "type": self.metadata.get("type", ""),
                "filePath": self.metadata.get("filePath", ""),
                "tags": json.loads(self.metadata.get("tags") or "[]"),
                "projects": json.loads(self.metadata.get("projects") or "[]"),
                "status": self.metadata.get("status") or None,
                "sectionTitle": self.metadata.get("sectionTitle", ""),
                "sectionType": self.metadata.get("sectionType", ""),
                "chunkIndex": int(self.metadata.get("chunkIndex") or 0),
            },
            "relevanceScore": round(self.relevance_score, 4),
        }


class DocumentIndex:
    """Embeds, stores and searches document chunks for one collection."""

    def __init__(
        self,
        collection_name: Optional[str] = None,
        data_dir: Optional[Path] = None,
        embedder: Optional[OllamaClient] = None,
    ):
        """Initialize the index handle. Call initialize() before use.

        Args:
            collection_name: Collection name (default from config)
            data_dir: Directory for index files (default from config)
            embedder: Embedding client (default: OllamaClient from config)
        """
        self.collection_name = collection_name or config.COLLECTION_NAME
        self.data_dir = data_dir or config.DATA_DIR
        self.embedder = embedder or OllamaClient()

        self.vector_store = FAISSVectorStore(self.data_dir, self.collection_name, self.embedder)
        self.db = ChunkDatabase(self.data_dir / f"{self.collection_name}.sqlite")

        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(
        self,
        docs_dir: Optional[Path] = None,
        processor: Optional[DocumentProcessor] = None,
    ) -> None:
        """Connect to the collection, creating it if it does not exist.

        Args:
            docs_dir: If given and the collection is newly created, index
                this directory into it
            processor: Document processor used for that initial indexing
        """
        self.db.init_database()

        created = not self.vector_store.exists_on_disk()
        if created:
            # Rows left behind by a deleted index have no vectors
            if self.db.get_chunk_count():
                self.db.clear_all_chunks()
            logger.info("collection_created", collection=self.collection_name)
        else:
            await self.vector_store.load_index()
            stored = self.db.get_chunk_count()
            if stored != self.vector_store.ntotal:
                logger.warning(
                    "collection_out_of_sync",
                    collection=self.collection_name,
                    chunk_rows=stored,
                    vector_count=self.vector_store.ntotal,
                )
            logger.info("collection_connected", collection=self.collection_name)

        self._initialized = True

        if created and docs_dir is not None:
            processor = processor or DocumentProcessor()
            chunks = await processor.process_documents_to_chunks(docs_dir)
            if chunks:
                await self.add_chunks(chunks)
                logger.info(
                    "collection_populated",
                    collection=self.collection_name,
                    docs_dir=str(docs_dir),
                    chunk_count=len(chunks),
                )

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise IndexNotInitializedError(
                f"Collection '{self.collection_name}' not initialized. Call initialize() first."
            )

    async def reset(self) -> None:
        """Delete the collection's contents and start an empty one."""
        self._require_initialized()
        self.vector_store.delete_index()
        self.db.clear_all_chunks()
        logger.info("collection_reset", collection=self.collection_name)

    async def add_chunks(self, chunks: List[Chunk]) -> int:
        """Embed and store a batch of chunks.

        Embeddings are generated for the whole batch before anything is
        written, so an embedding failure leaves the collection unchanged.

        Returns:
            Number of chunks added

        Raises:
            IndexNotInitializedError: If initialize() has not been awaited
            DuplicateChunkError: If a chunk id is repeated or already stored
            EmbeddingError: If the embedding provider fails
        """
        self._require_initialized()

        if not chunks:
            return 0

        records = [chunk.to_record() for chunk in chunks]
        chunk_ids = [record["id"] for record in records]

        if len(set(chunk_ids)) != len(chunk_ids):
            raise DuplicateChunkError("Chunk ids repeat within the batch")

        existing = self.db.find_existing_chunk_ids(chunk_ids)
        if existing:
            raise DuplicateChunkError(f"Chunk ids already stored: {', '.join(existing[:5])}")

        embeddings = await self.embedder.embed_many([record["content"] for record in records])

        previous_total = self.vector_store.ntotal
        vector_ids = self.vector_store.add_vectors(embeddings)
        try:
            self.db.insert_chunks(list(zip(vector_ids, records)))
        except Exception:
            # Vectors without rows must never reach disk
            self.vector_store.truncate(previous_total)
            raise
        self.vector_store.save_index()

        logger.info(
            "chunks_added",
            collection=self.collection_name,
            count=len(records),
        )

        return len(records)

    async def search(self, query: str, options: Optional[SearchOptions] = None) -> List[SearchResult]:
        """Semantic search, most relevant first.

        Args:
            query: Natural language query
            options: Result count and type/project filters

        Returns:
            Up to options.max_results SearchResult objects

        Raises:
            IndexNotInitializedError: If initialize() has not been awaited
            EmbeddingError: If the query cannot be embedded
        """
        self._require_initialized()
        options = options or SearchOptions()

        if not query or not query.strip():
            logger.warning("empty_query_provided")
            return []

        if self.vector_store.ntotal == 0:
            logger.warning("empty_index_no_results", collection=self.collection_name)
            return []

        allowed_ids = None
        if options.has_filters:
            allowed_ids = self.db.filter_vector_ids(
                type_filter={doc_type.value for doc_type in options.type_filter},
                project_filter=options.project_filter,
            )
            if not allowed_ids:
                return []

        query_embedding = await self.embedder.embed(query)

        # Filtered searches rank everything, then keep allowed ids
        top_k = self.vector_store.ntotal if allowed_ids is not None else options.max_results
        vector_ids, distances = self.vector_store.search(query_embedding, top_k)

        hits = [
            (vector_id, distance)
            for vector_id, distance in zip(vector_ids, distances)
            if vector_id >= 0 and (allowed_ids is None or vector_id in allowed_ids)
        ][: options.max_results]

        rows = self.db.get_chunks_by_vector_ids([vector_id for vector_id, _ in hits])

        results = []
        for vector_id, distance in hits:
            row = rows.get(vector_id)
            if row is None:
                logger.warning("vector_id_without_chunk", vector_id=vector_id)
                continue
            results.append(
                SearchResult(
                    content=row["content"],
                    metadata=row["metadata"],
                    relevance_score=1.0 - distance,
                )
            )

        logger.info(
            "search_completed",
            query_length=len(query),
            results_returned=len(results),
            filtered=options.has_filters,
        )

        return results

    def get_info(self) -> Dict[str, Any]:
        """Collection name, chunk count and embedding details."""
        self._require_initialized()
        return {
            "name": self.collection_name,
            "count": self.db.get_chunk_count(),
            "embedding_model": self.embedder.model,
            "dimension": self.vector_store.dimension,
        }
