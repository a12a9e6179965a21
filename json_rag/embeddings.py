#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import numpy as np
import openai
from openai import OpenAI

from .config import EmbeddingConfig
from .errors import MalformedInput, UpstreamError, UpstreamUnavailable

_log = logging.getLogger(__name__)


def split_oversized_text(text: str, max_chunk_size: int) -> List[str]:
    """Режет длинный текст на подчанки не длиннее max_chunk_size символов.

    Слова (по пробельным символам) жадно собираются через одиночный пробел.
    Слово длиннее лимита обрезается по лимиту, остаток переходит в
    следующий подчанк.
    """
    if len(text) <= max_chunk_size:
        return [text]

    pieces: List[str] = []
    current = ""
    for word in text.split():
        while len(word) > max_chunk_size:
            if current:
                pieces.append(current)
                current = ""
            pieces.append(word[:max_chunk_size])
            word = word[max_chunk_size:]
        if not word:
            continue
        candidate = f"{current} {word}" if current else word
        if len(candidate) > max_chunk_size:
            pieces.append(current)
            current = word
        else:
            current = candidate
    if current:
        pieces.append(current)
    return pieces


def mean_embedding(vectors: List[List[float]]) -> List[float]:
    """Поэлементное среднее векторов одинаковой размерности."""
    dims = {len(v) for v in vectors}
    if len(dims) != 1:
        raise UpstreamError(f"Sub-chunk embeddings have mixed dimensions: {sorted(dims)}")
    return np.mean(np.asarray(vectors, dtype=np.float64), axis=0).tolist()


class EmbeddingClient:
    """Клиент эмбеддингов поверх OpenAI-совместимого API (Ollama /v1).

    Один экземпляр (одна модель) используется и для документов, и для
    запросов: эмбеддинги разных моделей несравнимы между собой.
    """

    def __init__(self, client: OpenAI, model_name: str, max_chunk_size: int = 8000) -> None:
        if max_chunk_size <= 0:
            raise ValueError("max_chunk_size must be positive")
        self._client = client
        self.model_name = model_name
        self.max_chunk_size = max_chunk_size

    @classmethod
    def from_config(cls, cfg: EmbeddingConfig) -> "EmbeddingClient":
        # Повторов нет нигде в ядре: неудачный запрос сразу становится ошибкой.
        client = OpenAI(base_url=cfg.base_url, api_key=cfg.api_key, timeout=cfg.timeout_s, max_retries=0)
        return cls(client, model_name=cfg.model_name, max_chunk_size=cfg.max_chunk_size)

    def _request_embedding(self, text: str) -> List[float]:
        try:
            resp = self._client.embeddings.create(model=self.model_name, input=text)
        except openai.APIConnectionError as exc:
            raise UpstreamUnavailable(f"Embedding service unreachable: {exc}") from exc
        except openai.APIStatusError as exc:
            raise UpstreamError(f"Embedding service error: {exc.message}", status_code=exc.status_code) from exc
        except openai.APIError as exc:
            raise UpstreamError(f"Embedding service error: {exc}") from exc

        if not resp.data or not resp.data[0].embedding:
            raise UpstreamError("Embedding service returned no embedding")
        return list(resp.data[0].embedding)

    def embed(self, text: str) -> List[float]:
        """Эмбеддинг текста; длинный текст режется на подчанки и усредняется."""
        if not text or not text.strip():
            raise MalformedInput("Cannot embed empty text")

        pieces = split_oversized_text(text, self.max_chunk_size)
        if len(pieces) == 1:
            return self._request_embedding(pieces[0])

        _log.debug("Text of %d chars split into %d sub-chunks", len(text), len(pieces))
        vectors = [self._request_embedding(piece) for piece in pieces]
        return mean_embedding(vectors)

    def model_info(self, model_name: Optional[str] = None) -> Dict[str, Any]:
        """Описание модели из сервиса (по умолчанию - модели эмбеддингов)."""
        name = model_name or self.model_name
        try:
            model = self._client.models.retrieve(name)
        except openai.APIConnectionError as exc:
            raise UpstreamUnavailable(f"Model service unreachable: {exc}") from exc
        except openai.APIStatusError as exc:
            raise UpstreamError(f"Model info error: {exc.message}", status_code=exc.status_code) from exc
        except openai.APIError as exc:
            raise UpstreamError(f"Model info error: {exc}") from exc
        return model.model_dump()


__all__ = ["EmbeddingClient", "mean_embedding", "split_oversized_text"]
