#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from dataclasses import dataclass
from typing import Optional


@dataclass
class EmbeddingConfig:
    """Параметры модели эмбеддингов (OpenAI-совместимый API, по умолчанию Ollama).

    - base_url, api_key: адрес и ключ сервиса
    - model_name: модель эмбеддингов, одна и та же для документов и запросов
    - max_chunk_size: максимальная длина текста (в символах) для одного запроса
    - timeout_s: таймаут одного запроса к сервису
    """
    base_url: str = "http://localhost:11434/v1"
    api_key: str = "ollama"
    model_name: str = "nomic-embed-text"
    max_chunk_size: int = 8000
    timeout_s: float = 60.0


@dataclass
class LLMConfig:
    """Параметры языковой модели (OpenAI-совместимый API).

    - base_url: базовый URL сервиса LLM
    - api_key: ключ доступа
    - model_name: имя модели
    - temperature, top_p, max_tokens: параметры генерации
    - system_prompt: системный промпт; None - промпт уходит без роли system
    - timeout_s: таймаут одного запроса
    """
    base_url: str = "http://localhost:11434/v1"
    api_key: str = "ollama"
    model_name: str = "llama3.2:3b"
    temperature: float = 0.3
    top_p: float = 0.9
    max_tokens: int = 800
    system_prompt: Optional[str] = None
    timeout_s: float = 120.0


@dataclass
class ChunkingConfig:
    """Параметры нарезки документа на чанки.

    - target_chunk_size: целевой размер чанка в символах
    - overlap_sentences: сколько последних предложений переносить в следующий чанк
    """
    target_chunk_size: int = 500
    overlap_sentences: int = 1


@dataclass
class BatchConfig:
    """Параметры пакетного построения эмбеддингов.

    - batch_size: размер батча и число параллельных запросов
    - inter_batch_delay: пауза между батчами, секунды
    - preview_length: длина превью текста в результатах и прогрессе
    """
    batch_size: int = 5
    inter_batch_delay: float = 0.1
    preview_length: int = 100


@dataclass
class RetrievalConfig:
    """Параметры извлечения контекста.

    - top_k: сколько наиболее похожих чанков передавать в промпт
    """
    top_k: int = 3
