"""Section chunking with a sliding word window.

Sections that fit the token budget become a single chunk. Larger sections
are cut into fixed-size word windows that overlap, so a hit near a window
boundary still carries the neighbouring sentences.
"""
import math
from typing import List, Optional

import structlog

from docsearch import config
from docsearch.errors import ConfigurationError
from docsearch.rag.models import ChunkDraft, Section
from docsearch.rag.tokens import estimate_tokens

logger = structlog.get_logger()


class SectionChunker:
    """Splits sections into chunk drafts bounded by an estimated token budget."""

    def __init__(
        self,
        max_chunk_tokens: Optional[int] = None,
        overlap_tokens: Optional[int] = None,
    ):
        """Initialize the section chunker.

        Args:
            max_chunk_tokens: Token budget per chunk (default from config)
            overlap_tokens: Tokens shared by consecutive windows (default from config)

        Raises:
            ConfigurationError: If the window would not advance
        """
        self.max_chunk_tokens = (
            config.MAX_CHUNK_TOKENS if max_chunk_tokens is None else max_chunk_tokens
        )
        self.overlap_tokens = (
            config.OVERLAP_TOKENS if overlap_tokens is None else overlap_tokens
        )

        # Token budgets translated to word counts
        self.words_per_chunk = math.floor(self.max_chunk_tokens * config.WORDS_PER_TOKEN)
        self.overlap_words = math.floor(self.overlap_tokens * config.WORDS_PER_TOKEN)
        self.step = self.words_per_chunk - self.overlap_words

        if self.overlap_words < 0:
            raise ConfigurationError(
                f"Overlap ({self.overlap_tokens} tokens) must not be negative"
            )
        if self.step <= 0:
            raise ConfigurationError(
                f"Overlap ({self.overlap_tokens} tokens, {self.overlap_words} words) "
                f"must be less than chunk size ({self.max_chunk_tokens} tokens, "
                f"{self.words_per_chunk} words)"
            )

        logger.debug(
            "chunker_initialized",
            max_chunk_tokens=self.max_chunk_tokens,
            overlap_tokens=self.overlap_tokens,
            words_per_chunk=self.words_per_chunk,
            step=self.step,
        )

    def chunk_section(self, section: Section, start_index: int) -> List[ChunkDraft]:
        """Turn one section into chunk drafts.

        Indices are assigned from start_index upwards, so len(result) is the
        number of indices consumed.

        Args:
            section: Section to chunk
            start_index: Chunk index of the first draft

        Returns:
            Ordered list of ChunkDraft objects
        """
        tokens = estimate_tokens(section.text)

        if tokens <= self.max_chunk_tokens:
            return [
                ChunkDraft(
                    chunk_index=start_index,
                    content=section.text.strip(),
                    section_type=section.section_type,
                    section_title=section.title,
                    tokens=tokens,
                )
            ]

        return self.split_large_section(section, start_index)

    def split_large_section(self, section: Section, start_index: int) -> List[ChunkDraft]:
        """Slide an overlapping word window across the section."""
        words = section.text.split()
        drafts: List[ChunkDraft] = []
        start = 0

        # A window starts at every step offset, including a final partial one
        while start < len(words):
            window = words[start : start + self.words_per_chunk]
            content = " ".join(window)

            drafts.append(
                ChunkDraft(
                    chunk_index=start_index + len(drafts),
                    content=content,
                    section_type=section.section_type,
                    section_title=section.title,
                    tokens=estimate_tokens(content),
                )
            )
            start += self.step

        logger.debug(
            "section_split",
            section_title=section.title,
            word_count=len(words),
            chunk_count=len(drafts),
        )

        return drafts
