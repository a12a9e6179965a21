#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import logging
from typing import Any, List

from .chunking import TextChunker
from .embeddings import EmbeddingClient
from .errors import EmbeddingFailed
from .models import Chunk
from .vectorstore import VectorStore

_log = logging.getLogger(__name__)


class DocumentIndexer:
    """Индексатор JSON-документов во векторное хранилище в памяти.

    1) Режет документ на чанки
    2) По очереди получает эмбеддинг каждого чанка
    3) Сразу добавляет чанк в хранилище

    Чанки обрабатываются строго последовательно, поэтому порядок в
    хранилище совпадает с порядком нарезки.
    """
    def __init__(self, chunker: TextChunker, embedder: EmbeddingClient, store: VectorStore) -> None:
        self.chunker = chunker
        self.embedder = embedder
        self.store = store

    def ingest(self, document: Any) -> List[Chunk]:
        """Индексирует документ и возвращает сохранённые чанки.

        Ошибка эмбеддинга любого чанка прерывает документ с EmbeddingFailed;
        уже сохранённые чанки остаются в хранилище.
        """
        chunks = self.chunker.chunk(document)
        _log.info("Ingesting %d chunks from document", len(chunks))

        stored: List[Chunk] = []
        for chunk in chunks:
            try:
                embedding = self.embedder.embed(chunk.content)
            except Exception as exc:
                raise EmbeddingFailed(
                    f"Failed to embed {chunk.id} ({len(stored)} of {len(chunks)} chunks stored): {exc}",
                    chunk_id=chunk.id,
                    chunks_stored=len(stored),
                ) from exc
            embedded = chunk.with_embedding(embedding)
            self.store.insert(embedded)
            stored.append(embedded)

        _log.info("Document ingested, store now holds %d chunks", len(self.store))
        return stored


__all__ = ["DocumentIndexer"]
