"""FAISS vector store for semantic search.

Handles:
- Runtime embedding dimension detection
- FAISS index initialization and loading
- Vector addition and cosine-distance search
- Metadata persistence
"""
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import faiss
import numpy as np
import structlog

from docsearch.llm_client import OllamaClient

logger = structlog.get_logger()

INDEX_TYPE = "IndexFlatIP"


class FAISSVectorStore:
    """Inner-product FAISS index over L2-normalized vectors.

    Distances reported by search() are cosine distances, 1 - cos(a, b),
    so they lie in [0, 2].
    """

    def __init__(self, index_dir: Path, collection_name: str, embedder: OllamaClient):
        """Initialize the FAISS vector store.

        Args:
            index_dir: Directory holding the index and its metadata file
            collection_name: Name used for the on-disk files
            embedder: Embedding client, used to detect the model dimension
        """
        self.index_dir = index_dir
        self.collection_name = collection_name
        self.embedder = embedder

        self.index_path = self.index_dir / f"{collection_name}.index"
        self.metadata_path = self.index_dir / f"{collection_name}.json"

        self.index: Optional[faiss.Index] = None
        self.dimension: Optional[int] = None
        self.metadata: Dict[str, Any] = {}

    @property
    def ntotal(self) -> int:
        return 0 if self.index is None else self.index.ntotal

    def exists_on_disk(self) -> bool:
        return self.index_path.exists() and self.metadata_path.exists()

    async def get_embedding_dimension(self) -> int:
        """Detect embedding dimension by embedding a test string."""
        logger.info("detecting_embedding_dimension", model=self.embedder.model)
        dimension = len(await self.embedder.embed("test"))
        logger.info("embedding_dimension_detected", dimension=dimension)
        return dimension

    def init_new_index(self, dimension: int) -> None:
        """Initialize a new, empty FAISS index."""
        self.dimension = dimension
        self.index = faiss.IndexFlatIP(self.dimension)

        self.metadata = {
            "collection_name": self.collection_name,
            "embedding_model": self.embedder.model,
            "embedding_dimension": self.dimension,
            "index_type": INDEX_TYPE,
            "vector_count": 0,
        }

        logger.info(
            "faiss_index_initialized",
            collection=self.collection_name,
            dimension=self.dimension,
            index_type=INDEX_TYPE,
        )

    async def load_index(self) -> None:
        """Load the FAISS index from disk.

        Validates dimension compatibility with the current embedding model.

        Raises:
            FileNotFoundError: If index files don't exist
            ValueError: If dimension mismatch detected
            RuntimeError: If loading fails
        """
        if not self.index_path.exists():
            raise FileNotFoundError(f"Index not found: {self.index_path}")

        if not self.metadata_path.exists():
            raise FileNotFoundError(f"Metadata not found: {self.metadata_path}")

        try:
            self.metadata = json.loads(self.metadata_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise RuntimeError(f"Failed to load metadata: {e}") from e

        stored_model = self.metadata.get("embedding_model")
        stored_dim = self.metadata.get("embedding_dimension")

        current_dim = await self.get_embedding_dimension()

        if current_dim != stored_dim:
            raise ValueError(
                f"Dimension mismatch: index was built with {stored_model} "
                f"(dim={stored_dim}), but current model {self.embedder.model} "
                f"has dim={current_dim}. Please rebuild the index."
            )

        try:
            self.index = faiss.read_index(str(self.index_path))
            self.dimension = stored_dim
        except Exception as e:
            raise RuntimeError(f"Failed to load FAISS index: {e}") from e

        logger.info(
            "faiss_index_loaded",
            dimension=self.dimension,
            vector_count=self.index.ntotal,
            model=stored_model,
        )

    def save_index(self) -> None:
        """Save the FAISS index and metadata to disk.

        Raises:
            RuntimeError: If there is no index or the save fails
        """
        if self.index is None:
            raise RuntimeError("No index to save. Initialize or load an index first.")

        self.index_dir.mkdir(parents=True, exist_ok=True)
        self.metadata["vector_count"] = self.index.ntotal

        try:
            faiss.write_index(self.index, str(self.index_path))
            self.metadata_path.write_text(json.dumps(self.metadata, indent=2), encoding="utf-8")
        except Exception as e:
            raise RuntimeError(f"Failed to save FAISS index: {e}") from e

        logger.info(
            "faiss_index_saved",
            index_path=str(self.index_path),
            vector_count=self.index.ntotal,
        )

    def add_vectors(self, embeddings: List[List[float]]) -> List[int]:
        """Add vectors, creating the index from their dimension if needed.

        Returns:
            Vector ids (positions in the index)

        Raises:
            ValueError: On dimension mismatch
        """
        if not embeddings:
            return []

        vectors = np.array(embeddings, dtype=np.float32)

        if self.index is None:
            self.init_new_index(vectors.shape[1])

        if vectors.shape[1] != self.dimension:
            raise ValueError(
                f"Embedding dimension mismatch: expected {self.dimension}, "
                f"got {vectors.shape[1]}"
            )

        faiss.normalize_L2(vectors)

        start_id = self.index.ntotal
        self.index.add(vectors)

        logger.info(
            "vectors_added",
            count=len(embeddings),
            total_vectors=self.index.ntotal,
        )

        return list(range(start_id, start_id + len(embeddings)))

    def search(self, query_embedding: List[float], top_k: int) -> Tuple[List[int], List[float]]:
        """Nearest neighbours of the query, closest first.

        Returns:
            Tuple of (vector_ids, cosine_distances)

        Raises:
            ValueError: On dimension mismatch
        """
        top_k = min(top_k, self.ntotal)
        if top_k <= 0:
            return [], []

        query_vector = np.array([query_embedding], dtype=np.float32)

        if query_vector.shape[1] != self.dimension:
            raise ValueError(
                f"Query dimension mismatch: expected {self.dimension}, "
                f"got {query_vector.shape[1]}"
            )

        faiss.normalize_L2(query_vector)
        similarities, indices = self.index.search(query_vector, top_k)

        vector_ids = indices[0].tolist()
        distances = [1.0 - float(score) for score in similarities[0].tolist()]

        logger.debug("vector_search_completed", top_k=top_k, results_found=len(vector_ids))

        return vector_ids, distances

    def truncate(self, count: int) -> None:
        """Drop every vector past the first count, undoing unsaved additions."""
        if self.index is None or self.index.ntotal <= count:
            return

        removed = self.index.remove_ids(faiss.IDSelectorRange(count, self.index.ntotal))

        logger.warning("vectors_discarded", count=int(removed), total_vectors=self.index.ntotal)

    def delete_index(self) -> None:
        """Forget the in-memory index and delete its files."""
        for path in (self.index_path, self.metadata_path):
            if path.exists():
                path.unlink()
                logger.info("deleted_index_file", path=str(path))

        self.index = None
        self.dimension = None
        self.metadata = {}
