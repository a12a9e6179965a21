#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Модели данных ядра: чанки, результаты эмбеддинга и события стриминга."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, JsonValue, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from .errors import MalformedInput

_JSON_VALUE = TypeAdapter(JsonValue)


def ensure_json_value(value: Any) -> JsonValue:
    """Проверяет, что значение - JSON (null/bool/число/строка/массив/объект).

    Всё остальное (множества, кортежи, произвольные объекты) отклоняется
    с MalformedInput, а не превращается молча в строку.
    """
    try:
        return _JSON_VALUE.validate_python(value)
    except ValidationError as exc:
        raise MalformedInput(f"Input is not a JSON value: {exc.errors()[0]['msg']}") from exc


class CamelModel(BaseModel):
    """База для моделей, которые уходят наружу в camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Chunk(BaseModel):
    """Фрагмент документа и (после индексации) его эмбеддинг."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Стабильный идентификатор вида chunk_<index>.")
    content: str = Field(..., min_length=1, description="Текст фрагмента.")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    embedding: Optional[Tuple[float, ...]] = None

    def with_embedding(self, embedding: Sequence[float]) -> "Chunk":
        """Возвращает копию чанка с эмбеддингом; исходный чанк не меняется."""
        if self.embedding is not None:
            raise ValueError(f"Chunk {self.id} already has an embedding")
        return self.model_copy(update={"embedding": tuple(float(x) for x in embedding)})


class EmbeddingResult(CamelModel):
    embedding: List[float]
    original_index: int = Field(..., ge=0)
    text: str


class StreamingProgress(CamelModel):
    processed: int
    total: int
    current_item: Optional[str] = None


class CompletionSummary(CamelModel):
    message: str = "Processing complete"
    total_processed: int


class StreamEvent(BaseModel):
    """Одно событие потока пакетного эмбеддинга."""

    event: Literal["progress", "embedding", "complete"]
    data: Union[StreamingProgress, EmbeddingResult, CompletionSummary]

    def to_sse(self) -> str:
        """Кадр Server-Sent Events: строка event, строка data и пустая строка."""
        return f"event: {self.event}\ndata: {self.data.model_dump_json(by_alias=True)}\n\n"


__all__ = [
    "CamelModel",
    "Chunk",
    "CompletionSummary",
    "EmbeddingResult",
    "StreamEvent",
    "StreamingProgress",
    "ensure_json_value",
]
