from __future__ import annotations

import hashlib
import random
from typing import List

from ...domain.interfaces import EmbeddingFunction
from ...domain.models import Vector


class MockEmbeddingFunction(EmbeddingFunction):
    """Offline embedder for tests and demos.

    Vectors are pseudo-random but seeded from the text, so identical texts
    always embed to identical vectors.
    """

    def __init__(self, dimension: int = 768) -> None:
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")
        self.dimension = dimension

    def generate(self, texts: List[str]) -> List[Vector]:
        out: List[Vector] = []
        for t in texts:
            seed = int.from_bytes(hashlib.sha256(t.encode("utf-8")).digest()[:8], "big")
            rng = random.Random(seed)
            out.append([rng.random() for _ in range(self.dimension)])
        return out
