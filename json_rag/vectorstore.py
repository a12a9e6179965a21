#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Векторное хранилище в памяти процесса (только добавление, полный перебор)."""

from __future__ import annotations

import threading
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .models import Chunk


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a| * |b|); для нулевого вектора сходство равно 0."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)


class VectorStore:
    """Упорядоченный список чанков с эмбеддингами одной размерности.

    Размерность фиксируется первым чанком; чанк без эмбеддинга или с другой
    размерностью не попадает в хранилище. Запись защищена блокировкой.
    """

    def __init__(self) -> None:
        self._chunks: List[Chunk] = []
        self._dimension: Optional[int] = None
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._chunks)

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    @property
    def chunks(self) -> Tuple[Chunk, ...]:
        with self._lock:
            return tuple(self._chunks)

    def insert(self, chunk: Chunk) -> None:
        if not chunk.embedding:
            raise ValueError(f"Chunk {chunk.id} has no embedding")
        with self._lock:
            dim = len(chunk.embedding)
            if self._dimension is not None and dim != self._dimension:
                raise ValueError(
                    f"Chunk {chunk.id} has embedding dimension {dim}, store expects {self._dimension}"
                )
            self._chunks.append(chunk)
            self._dimension = dim

    def search_with_scores(self, query_embedding: Sequence[float], top_k: int) -> List[Tuple[Chunk, float]]:
        """Top-K чанков с их косинусным сходством, по убыванию сходства.

        При равном сходстве раньше идёт чанк, добавленный раньше.
        """
        if top_k <= 0:
            raise ValueError("top_k must be positive")
        chunks = self.chunks
        if not chunks:
            return []

        query = np.asarray(query_embedding, dtype=np.float64)
        if query.shape != (self._dimension,):
            raise ValueError(f"Query dimension {query.size} != store dimension {self._dimension}")

        matrix = np.asarray([c.embedding for c in chunks], dtype=np.float64)
        denom = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        scores = np.divide(matrix @ query, denom, out=np.zeros(len(chunks)), where=denom > 0)

        order = np.argsort(-scores, kind="stable")[:top_k]
        return [(chunks[i], float(scores[i])) for i in order]

    def search(self, query_embedding: Sequence[float], top_k: int) -> List[str]:
        """Тексты top-K наиболее похожих чанков, самый похожий первым."""
        return [chunk.content for chunk, _ in self.search_with_scores(query_embedding, top_k)]


__all__ = ["VectorStore", "cosine_similarity"]
