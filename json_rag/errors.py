#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Иерархия исключений ядра RAG.

Каждое исключение знает этап, на котором оно возникло, и HTTP-статус,
в который его переводит HTTP-слой.
"""

from typing import Optional


class RagError(Exception):
    """Базовое исключение ядра."""

    def __init__(self, message: str, stage: str, http_status: int = 500):
        self.message = message
        self.stage = stage
        self.http_status = http_status
        super().__init__(message)


class UpstreamUnavailable(RagError):
    """Сервис модели недоступен (нет соединения или истёк таймаут)."""

    def __init__(self, message: str):
        super().__init__(message, "upstream", 503)


class UpstreamError(RagError):
    """Сервис модели ответил ошибкой или некорректными данными."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, "upstream", 502)
        self.status_code = status_code


class EmbeddingFailed(RagError):
    """Не удалось получить эмбеддинг чанка при индексации документа."""

    def __init__(self, message: str, chunk_id: Optional[str] = None, chunks_stored: int = 0):
        super().__init__(message, "ingestion", 502)
        self.chunk_id = chunk_id
        self.chunks_stored = chunks_stored


class MalformedInput(RagError, ValueError):
    """Некорректный клиентский ввод: не JSON-значение, пустой текст или вопрос.

    Наследует ValueError, поэтому вызывающий код может ловить его как обычную
    ошибку значения.
    """

    def __init__(self, message: str):
        super().__init__(message, "validation", 400)
