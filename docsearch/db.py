"""SQLite chunk table backing the vector index.

Stores, per FAISS vector id:
- The chunk id and text
- The flattened string metadata
- The type and projects columns used by search filters
"""
import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Collection, Dict, List, Optional, Set, Tuple

import structlog

logger = structlog.get_logger()


class ChunkDatabase:
    """Chunk rows for one collection, one connection per operation."""

    def __init__(self, db_path: Path):
        self.db_path = db_path

    def get_connection(self) -> sqlite3.Connection:
        """Get a connection with row_factory set to sqlite3.Row."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_database(self) -> None:
        """Create the chunks table and its indexes if missing."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS chunks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    vector_id INTEGER NOT NULL UNIQUE,
                    chunk_id TEXT NOT NULL UNIQUE,
                    content TEXT NOT NULL,
                    doc_type TEXT NOT NULL,
                    projects_json TEXT NOT NULL,
                    metadata_json TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_chunks_doc_type
                ON chunks(doc_type)
            """)

            conn.commit()
            logger.debug("database_initialized", db_path=str(self.db_path))

        except Exception as e:
            conn.rollback()
            logger.error("database_init_failed", error=str(e))
            raise
        finally:
            conn.close()

    def insert_chunks(self, rows: List[Tuple[int, Dict[str, Any]]]) -> int:
        """Insert chunk records in a single transaction.

        Args:
            rows: (vector_id, record) pairs; record is {id, content, metadata}
                with string metadata values

        Returns:
            Number of rows inserted
        """
        created_at = datetime.now(timezone.utc).isoformat()
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.executemany("""
                INSERT INTO chunks (
                    vector_id, chunk_id, content, doc_type,
                    projects_json, metadata_json, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """, [
                (
                    vector_id,
                    record["id"],
                    record["content"],
                    record["metadata"]["type"],
                    record["metadata"]["projects"],
                    json.dumps(record["metadata"]),
                    created_at,
                )
                for vector_id, record in rows
            ])

            conn.commit()
            logger.info("chunks_inserted", count=len(rows))
            return len(rows)

        except Exception as e:
            conn.rollback()
            logger.error("chunk_insert_failed", error=str(e))
            raise
        finally:
            conn.close()

    def find_existing_chunk_ids(self, chunk_ids: Collection[str]) -> List[str]:
        """Return the subset of chunk_ids already stored."""
        if not chunk_ids:
            return []

        conn = self.get_connection()
        try:
            placeholders = ",".join("?" * len(chunk_ids))
            rows = conn.execute(
                f"SELECT chunk_id FROM chunks WHERE chunk_id IN ({placeholders})",
                list(chunk_ids),
            ).fetchall()
            return [row["chunk_id"] for row in rows]
        finally:
            conn.close()

    def get_chunks_by_vector_ids(self, vector_ids: List[int]) -> Dict[int, Dict[str, Any]]:
        """Retrieve chunks keyed by FAISS vector id.

        Returns:
            Mapping of vector_id to {chunk_id, content, metadata}
        """
        if not vector_ids:
            return {}

        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            placeholders = ",".join("?" * len(vector_ids))
            cursor.execute(f"""
                SELECT vector_id, chunk_id, content, metadata_json
                FROM chunks
                WHERE vector_id IN ({placeholders})
            """, vector_ids)

            return {
                row["vector_id"]: {
                    "chunk_id": row["chunk_id"],
                    "content": row["content"],
                    "metadata": json.loads(row["metadata_json"]),
                }
                for row in cursor.fetchall()
            }

        except Exception as e:
            logger.error("chunks_retrieval_failed", error=str(e))
            raise
        finally:
            conn.close()

    def filter_vector_ids(
        self,
        type_filter: Optional[Collection[str]] = None,
        project_filter: Optional[Collection[str]] = None,
    ) -> Set[int]:
        """Vector ids whose type is in type_filter and whose projects meet project_filter.

        An empty or missing filter does not constrain its field.
        """
        clauses: List[str] = []
        params: List[str] = []

        if type_filter:
            clauses.append(f"doc_type IN ({','.join('?' * len(type_filter))})")
            params.extend(sorted(type_filter))

        if project_filter:
            clauses.append(
                "EXISTS (SELECT 1 FROM json_each(chunks.projects_json) "
                f"WHERE json_each.value IN ({','.join('?' * len(project_filter))}))"
            )
            params.extend(sorted(project_filter))

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        conn = self.get_connection()
        try:
            rows = conn.execute(f"SELECT vector_id FROM chunks {where}", params).fetchall()
            return {row["vector_id"] for row in rows}
        except Exception as e:
            logger.error("chunk_filter_failed", error=str(e))
            raise
        finally:
            conn.close()

    def clear_all_chunks(self) -> int:
        """Delete all chunks, returning how many were removed."""
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT COUNT(*) FROM chunks")
            count = cursor.fetchone()[0]

            cursor.execute("DELETE FROM chunks")
            conn.commit()

            logger.info("chunks_cleared", count=count)
            return count

        except Exception as e:
            conn.rollback()
            logger.error("chunks_clear_failed", error=str(e))
            raise
        finally:
            conn.close()

    def get_chunk_count(self) -> int:
        """Total number of stored chunks."""
        conn = self.get_connection()
        try:
            return conn.execute("SELECT COUNT(*) FROM chunks").fetchone()[0]
        finally:
            conn.close()
