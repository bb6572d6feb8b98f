"""Domain models for processed documents and their chunks.

Documents and chunks are frozen once produced. Chunks are built in two
phases: a mutable ChunkDraft per emitted window (phase 1), then
ChunkDraft.finalize() once the document's chunk count is known (phase 2).
"""
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class DocumentType(str, Enum):
    """Kind of document, inferred from its path."""

    ADR = "adr"
    RFC = "rfc"
    GUIDE = "guide"
    RULE = "rule"
    PROJECT = "project"


class SectionType(str, Enum):
    """Semantic role of a heading-delimited section."""

    CONTEXT = "context"
    DECISION = "decision"
    CONSEQUENCES = "consequences"
    SUMMARY = "summary"
    BACKGROUND = "background"
    IMPLEMENTATION = "implementation"
    CONTENT = "content"


@dataclass(frozen=True)
class Section:
    """Contiguous run of lines starting at a heading (or at the top of the body)."""

    title: str
    section_type: SectionType
    text: str


@dataclass(frozen=True)
class DocumentMetadata:
    """Metadata shared by a document and every one of its chunks."""

    title: str
    doc_type: DocumentType
    tags: Tuple[str, ...]
    projects: Tuple[str, ...]
    status: Optional[str]
    file_path: str
    related: Dict[str, Tuple[str, ...]]

    def flatten(self) -> Dict[str, str]:
        """Render metadata as scalar strings, lists and mappings as JSON text."""
        return {
            "title": self.title,
            "type": self.doc_type.value,
            "tags": json.dumps(list(self.tags)),
            "projects": json.dumps(list(self.projects)),
            "status": self.status or "",
            "filePath": self.file_path,
            "related": json.dumps({kind: list(refs) for kind, refs in self.related.items()}),
        }

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "title": self.title,
            "type": self.doc_type.value,
            "tags": list(self.tags),
            "projects": list(self.projects),
            "filePath": self.file_path,
            "related": {kind: list(refs) for kind, refs in self.related.items()},
        }
        if self.status is not None:
            result["status"] = self.status
        return result


@dataclass(frozen=True)
class ChunkMetadata(DocumentMetadata):
    """Document metadata plus the chunk's position and section."""

    chunk_index: int
    total_chunks: int
    section_type: SectionType
    section_title: str
    tokens: int

    @classmethod
    def from_document(
        cls,
        metadata: DocumentMetadata,
        *,
        chunk_index: int,
        total_chunks: int,
        section_type: SectionType,
        section_title: str,
        tokens: int,
    ) -> "ChunkMetadata":
        return cls(
            title=metadata.title,
            doc_type=metadata.doc_type,
            tags=metadata.tags,
            projects=metadata.projects,
            status=metadata.status,
            file_path=metadata.file_path,
            related=metadata.related,
            chunk_index=chunk_index,
            total_chunks=total_chunks,
            section_type=section_type,
            section_title=section_title,
            tokens=tokens,
        )

    def flatten(self) -> Dict[str, str]:
        flat = super().flatten()
        flat.update(
            {
                "chunkIndex": str(self.chunk_index),
                "totalChunks": str(self.total_chunks),
                "sectionType": self.section_type.value,
                "sectionTitle": self.section_title,
                "tokens": str(self.tokens),
            }
        )
        return flat

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result.update(
            {
                "chunkIndex": self.chunk_index,
                "totalChunks": self.total_chunks,
                "sectionType": self.section_type.value,
                "sectionTitle": self.section_title,
                "tokens": self.tokens,
            }
        )
        return result


@dataclass(frozen=True)
class Chunk:
    """Unit of retrieval stored in the vector index."""

    id: str
    content: str
    metadata: ChunkMetadata

    def to_record(self) -> Dict[str, Any]:
        """Record handed to the vector index: id, content and string metadata."""
        return {
            "id": self.id,
            "content": self.content,
            "metadata": self.metadata.flatten(),
        }


@dataclass
class ChunkDraft:
    """Chunk whose document-wide total is not known yet."""

    chunk_index: int
    content: str
    section_type: SectionType
    section_title: str
    tokens: int

    def finalize(
        self, document_id: str, metadata: DocumentMetadata, total_chunks: int
    ) -> Chunk:
        return Chunk(
            id=f"{document_id}_chunk_{self.chunk_index}",
            content=self.content,
            metadata=ChunkMetadata.from_document(
                metadata,
                chunk_index=self.chunk_index,
                total_chunks=total_chunks,
                section_type=self.section_type,
                section_title=self.section_title,
                tokens=self.tokens,
            ),
        )


@dataclass(frozen=True)
class Document:
    """One processed source file."""

    id: str
    content: str
    metadata: DocumentMetadata
    chunks: Tuple[Chunk, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "metadata": self.metadata.to_dict(),
            "chunks": [
                {
                    "id": chunk.id,
                    "content": chunk.content,
                    "metadata": chunk.metadata.to_dict(),
                }
                for chunk in self.chunks
            ],
        }


def flatten_chunks(documents: List[Document]) -> List[Chunk]:
    """Concatenate the chunks of many documents, preserving order."""
    return [chunk for document in documents for chunk in document.chunks]
