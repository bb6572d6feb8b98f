"""Shared pytest fixtures."""
from hashlib import blake2b
from math import sqrt
from pathlib import Path
from typing import Callable, Dict, List

import pytest


class FakeEmbedder:
    """Deterministic bag-of-words hashing embedder; no network calls."""

    model = "fake-embed"

    def __init__(self, dimension: int = 64):
        self.dimension = dimension
        self.calls = 0

    async def embed(self, text: str) -> List[float]:
        self.calls += 1
        vector = [0.0] * self.dimension
        for token in text.lower().split():
            digest = blake2b(token.strip(".,#:").encode("utf-8"), digest_size=8).digest()
            vector[int.from_bytes(digest[:4], "little") % self.dimension] += 1.0
        norm = sqrt(sum(value * value for value in vector))
        if norm == 0:
            vector[0] = 1.0
            return vector
        return [value / norm for value in vector]

    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        return [await self.embed(text) for text in texts]


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[Dict[str, str]], Path]:
    """Write {relative_path: content} under tmp_path/docs and return that root."""

    def _make(files: Dict[str, str]) -> Path:
        root = tmp_path / "docs"
        root.mkdir(exist_ok=True)
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return root

    return _make
