#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations

import json
import logging
import re
from typing import Any, List

from .config import ChunkingConfig
from .models import Chunk, ensure_json_value

_log = logging.getLogger(__name__)

# Предложение: всё до ближайшей серии терминаторов включительно,
# либо хвост без терминатора в конце текста.
SENTENCE_PATTERN = re.compile(r"[^.!?\n]*[.!?\n]+|[^.!?\n]+\Z")

CHUNK_SOURCE = "uploaded_document"


def serialize_document(value: Any) -> str:
    """Каноническое текстовое представление JSON-документа (отступ 2, UTF-8)."""
    return json.dumps(value, indent=2, ensure_ascii=False)


def split_units(text: str) -> List[str]:
    """Режет текст на предложения, сохраняя каждое дословно вместе с терминатором.

    Склейка результата всегда даёт исходный текст.
    """
    return SENTENCE_PATTERN.findall(text)


class TextChunker:
    """Нарезка JSON-документа на чанки ограниченного размера по предложениям.

    Предложения упаковываются жадно, пока длина чанка не превысит
    target_chunk_size; следующий чанк начинается с последних
    overlap_sentences предложений предыдущего. Предложение никогда не
    разрезается: слишком длинное предложение становится отдельным чанком.
    """

    def __init__(self, target_chunk_size: int = 500, overlap_sentences: int = 1) -> None:
        if target_chunk_size <= 0:
            raise ValueError("target_chunk_size must be positive")
        if overlap_sentences < 0:
            raise ValueError("overlap_sentences must be non-negative")
        self.target_chunk_size = target_chunk_size
        self.overlap_sentences = overlap_sentences

    @classmethod
    def from_config(cls, cfg: ChunkingConfig) -> "TextChunker":
        return cls(target_chunk_size=cfg.target_chunk_size, overlap_sentences=cfg.overlap_sentences)

    def _overlap(self, units: List[str]) -> List[str]:
        if self.overlap_sentences == 0:
            return []
        return units[-self.overlap_sentences:]

    def chunk(self, value: Any) -> List[Chunk]:
        """Превращает JSON-значение в упорядоченный список чанков.

        Пустой вход (None, "", [], {}) даёт пустой список.
        """
        value = ensure_json_value(value)
        if value is None or value == "" or value == [] or value == {}:
            return []

        units = split_units(serialize_document(value))

        contents: List[str] = []
        current: List[str] = []
        current_length = 0
        for unit in units:
            if current and current_length + len(unit) > self.target_chunk_size:
                contents.append("".join(current))
                current = self._overlap(current)
                current_length = sum(len(u) for u in current)
            current.append(unit)
            current_length += len(unit)
        if current:
            contents.append("".join(current))

        chunks = [
            Chunk(
                id=f"chunk_{index}",
                content=content,
                metadata={"source": CHUNK_SOURCE, "chunk_index": index},
            )
            for index, content in enumerate(contents)
        ]
        _log.debug("Split %d sentences into %d chunks", len(units), len(chunks))
        return chunks


__all__ = ["TextChunker", "serialize_document", "split_units", "SENTENCE_PATTERN"]
