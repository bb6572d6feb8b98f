"""Tests for DocumentIndex and IngestPipeline against a local FAISS/SQLite store."""

import asyncio
import sqlite3
from pathlib import Path
from typing import Any, Dict, List

import pytest

from docsearch.errors import DuplicateChunkError, IndexNotInitializedError
from docsearch.rag.index import DocumentIndex, SearchOptions, SearchResult
from docsearch.rag.ingest import IngestPipeline
from docsearch.rag.models import Chunk, DocumentType, flatten_chunks
from docsearch.rag.processor import DocumentProcessor

FILES = {
    "adr/0001-postgres.adr.md": (
        "---\ntitle: Use Postgres\nrelated:\n  projects: [billing]\n---\n"
        "# Decision\nWe store billing data in postgres."
    ),
    "guides/react.md": (
        "---\ntitle: Frontend\nprojects: [web]\n---\n"
        "# Usage\nBuild components with react hooks."
    ),
    "rules/naming.md": "# Naming\nUse snake case for python modules.",
}


def _chunks(base: Path, files: Dict[str, str]) -> List[Chunk]:
    processor = DocumentProcessor(base_dir=base)
    documents = [processor.process_content(base / relative, content) for relative, content in files.items()]
    return flatten_chunks(documents)


def _new_index(tmp_path: Path, embedder: Any) -> DocumentIndex:
    index = DocumentIndex(collection_name="test", data_dir=tmp_path / "data", embedder=embedder)
    asyncio.run(index.initialize())
    return index


@pytest.fixture
def chunks(tmp_path: Path) -> List[Chunk]:
    return _chunks(tmp_path, FILES)


@pytest.fixture
def index(tmp_path: Path, fake_embedder: Any) -> DocumentIndex:
    return _new_index(tmp_path, fake_embedder)


@pytest.fixture
def populated(index: DocumentIndex, chunks: List[Chunk]) -> DocumentIndex:
    asyncio.run(index.add_chunks(chunks))
    return index


class TestInitialize:
    """Test collection lifecycle."""

    def test_new_collection_is_empty(self, index: DocumentIndex) -> None:
        info = index.get_info()

        assert index.initialized
        assert info["name"] == "test"
        assert info["count"] == 0
        assert info["embedding_model"] == "fake-embed"

    def test_uninitialized_operations_raise(self, tmp_path: Path, fake_embedder: Any,
                                            chunks: List[Chunk]) -> None:
        """Every operation fails before initialize() is awaited."""
        index = DocumentIndex(collection_name="test", data_dir=tmp_path / "data", embedder=fake_embedder)

        with pytest.raises(IndexNotInitializedError):
            asyncio.run(index.search("postgres"))
        with pytest.raises(IndexNotInitializedError):
            asyncio.run(index.add_chunks(chunks))
        with pytest.raises(IndexNotInitializedError):
            asyncio.run(index.reset())
        with pytest.raises(IndexNotInitializedError):
            index.get_info()

    def test_persists_across_handles(self, populated: DocumentIndex, chunks: List[Chunk], tmp_path: Path) -> None:
        """A second handle on the same directory sees the stored chunks."""
        reopened = _new_index(tmp_path, populated.embedder)

        assert reopened.get_info()["count"] == 3
        assert reopened.get_info()["dimension"] == 64

        results = asyncio.run(reopened.search(chunks[2].content))
        assert results[0].metadata["title"] == "naming"

    def test_initialize_populates_new_collection(self, tmp_path: Path, make_tree,
                                                 fake_embedder: Any) -> None:
        """docs_dir is indexed only when the collection is created."""
        root = make_tree(FILES)
        index = DocumentIndex(collection_name="seeded", data_dir=tmp_path / "data", embedder=fake_embedder)
        asyncio.run(index.initialize(docs_dir=root))

        assert index.get_info()["count"] == 3

        again = DocumentIndex(collection_name="seeded", data_dir=tmp_path / "data", embedder=fake_embedder)
        asyncio.run(again.initialize(docs_dir=root))

        assert again.get_info()["count"] == 3

    def test_reset_empties_collection(self, populated: DocumentIndex) -> None:
        asyncio.run(populated.reset())

        assert populated.get_info()["count"] == 0
        assert asyncio.run(populated.search("postgres")) == []


class TestAddChunks:
    """Test chunk upload."""

    def test_add_returns_count(self, index: DocumentIndex, chunks: List[Chunk]) -> None:
        assert asyncio.run(index.add_chunks(chunks)) == 3
        assert index.get_info()["count"] == 3
        assert index.get_info()["dimension"] == 64

    def test_add_empty_batch(self, index: DocumentIndex) -> None:
        assert asyncio.run(index.add_chunks([])) == 0

    def test_duplicate_within_batch_rejected(self, index: DocumentIndex, chunks: List[Chunk]) -> None:
        with pytest.raises(DuplicateChunkError):
            asyncio.run(index.add_chunks([chunks[0], chunks[0]]))

        assert index.get_info()["count"] == 0

    def test_duplicate_of_stored_chunk_rejected(self, populated: DocumentIndex, chunks: List[Chunk]) -> None:
        """Re-adding stored ids fails without embedding anything."""
        calls = populated.embedder.calls

        with pytest.raises(DuplicateChunkError):
            asyncio.run(populated.add_chunks(chunks[:1]))

        assert populated.embedder.calls == calls
        assert populated.get_info()["count"] == 3

    def test_failed_insert_discards_new_vectors(self, populated: DocumentIndex, tmp_path: Path,
                                                monkeypatch: pytest.MonkeyPatch) -> None:
        """A storage failure leaves no orphan vectors behind, in memory or on disk."""
        extra = _chunks(tmp_path, {"guides/extra.md": "# Extra\nCache invalidation notes."})

        def failing_insert(rows):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(populated.db, "insert_chunks", failing_insert)
        with pytest.raises(sqlite3.OperationalError):
            asyncio.run(populated.add_chunks(extra))
        monkeypatch.undo()

        assert populated.vector_store.ntotal == 3
        assert populated.get_info()["count"] == 3

        asyncio.run(populated.add_chunks(extra))
        reopened = _new_index(tmp_path, populated.embedder)

        assert reopened.vector_store.ntotal == 4
        assert reopened.get_info()["count"] == 4
        assert asyncio.run(reopened.search(extra[0].content))[0].content == extra[0].content


class TestSearch:
    """Test semantic search and filters."""

    def test_exact_content_ranks_first(self, populated: DocumentIndex, chunks: List[Chunk]) -> None:
        target = chunks[1]

        results = asyncio.run(populated.search(target.content))

        assert results[0].content == target.content
        assert results[0].relevance_score == pytest.approx(1.0, abs=1e-5)
        assert results[0].metadata["filePath"] == target.metadata.file_path

    def test_results_ordered_by_relevance(self, populated: DocumentIndex) -> None:
        results = asyncio.run(populated.search("postgres billing data"))
        scores = [result.relevance_score for result in results]

        assert len(results) == 3
        assert scores == sorted(scores, reverse=True)

    def test_max_results(self, populated: DocumentIndex) -> None:
        results = asyncio.run(populated.search("postgres", SearchOptions(max_results=1)))
        assert len(results) == 1

    def test_type_filter(self, populated: DocumentIndex) -> None:
        options = SearchOptions(type_filter=frozenset({DocumentType.RULE, DocumentType.GUIDE}))

        results = asyncio.run(populated.search("postgres", options))

        assert sorted(result.metadata["type"] for result in results) == ["guide", "rule"]

    def test_project_filter(self, populated: DocumentIndex) -> None:
        """Projects come from related.projects and the top-level key alike."""
        billing = asyncio.run(populated.search("react", SearchOptions(project_filter=frozenset({"billing"}))))
        web = asyncio.run(populated.search("postgres", SearchOptions(project_filter=frozenset({"web"}))))

        assert [result.metadata["title"] for result in billing] == ["Use Postgres"]
        assert [result.metadata["title"] for result in web] == ["Frontend"]

    def test_filters_combine(self, populated: DocumentIndex) -> None:
        options = SearchOptions(
            type_filter=frozenset({DocumentType.RULE}),
            project_filter=frozenset({"billing"}),
        )
        assert asyncio.run(populated.search("postgres", options)) == []

    def test_filter_without_matches_skips_embedding(self, populated: DocumentIndex) -> None:
        calls = populated.embedder.calls
        options = SearchOptions(project_filter=frozenset({"unknown"}))

        assert asyncio.run(populated.search("postgres", options)) == []
        assert populated.embedder.calls == calls

    @pytest.mark.parametrize("query", ["", "   "])
    def test_blank_query_returns_nothing(self, populated: DocumentIndex, query: str) -> None:
        assert asyncio.run(populated.search(query)) == []

    def test_empty_collection_returns_nothing(self, index: DocumentIndex) -> None:
        assert asyncio.run(index.search("postgres")) == []

    def test_invalid_max_results(self) -> None:
        with pytest.raises(ValueError):
            SearchOptions(max_results=0)


class TestSearchResult:
    """Test the JSON view of a result."""

    def test_to_dict_decodes_metadata(self, chunks: List[Chunk]) -> None:
        result = SearchResult(
            content="text",
            metadata=chunks[0].metadata.flatten(),
            relevance_score=0.123456,
        )

        data = result.to_dict()

        assert data["document"] == "text"
        assert data["relevanceScore"] == 0.1235
        assert data["metadata"]["projects"] == ["billing"]
        assert data["metadata"]["tags"] == []
        assert data["metadata"]["status"] is None
        assert data["metadata"]["type"] == "adr"
        assert data["metadata"]["sectionTitle"] == "Decision"
        assert data["metadata"]["chunkIndex"] == 0


class TestIngestPipeline:
    """Test full rebuilds from a docs directory."""

    def test_run_indexes_tree(self, index: DocumentIndex, make_tree, tmp_path: Path) -> None:
        root = make_tree(FILES)
        pipeline = IngestPipeline(index, docs_dir=root, processor=DocumentProcessor(base_dir=tmp_path))

        report = asyncio.run(pipeline.run())

        assert report.stats["files_processed"] == 3
        assert report.chunk_count == 3
        assert report.collection["count"] == 3
        assert sorted(summary.doc_type for summary in report.documents) == ["adr", "guide", "rule"]

    def test_rerun_replaces_contents(self, index: DocumentIndex, make_tree, tmp_path: Path) -> None:
        """A second run resets first, so ids never collide."""
        root = make_tree(FILES)
        pipeline = IngestPipeline(index, docs_dir=root, processor=DocumentProcessor(base_dir=tmp_path))

        asyncio.run(pipeline.run())
        report = asyncio.run(pipeline.run())

        assert report.collection["count"] == 3

    def test_empty_tree_leaves_collection(self, populated: DocumentIndex, make_tree) -> None:
        root = make_tree({"notes.txt": "not markdown"})

        report = asyncio.run(IngestPipeline(populated, docs_dir=root).run())

        assert report.chunk_count == 0
        assert report.collection == {}
        assert populated.get_info()["count"] == 3
