#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import logging
import os
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from json_rag.batch import BatchEmbeddingPipeline
from json_rag.config import (
    BatchConfig,
    ChunkingConfig,
    EmbeddingConfig,
    LLMConfig,
    RetrievalConfig,
)
from json_rag.engine import RagOrchestrator
from json_rag.errors import RagError
from json_rag.models import CamelModel, EmbeddingResult

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
_log = logging.getLogger(__name__)

app = FastAPI(title="JSON RAG API (Ollama)", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Один движок на процесс: хранилище живёт, пока живёт сервер.
_orchestrator: Optional[RagOrchestrator] = None
_pipeline: Optional[BatchEmbeddingPipeline] = None
_init_lock = threading.Lock()


def load_configs() -> Tuple[EmbeddingConfig, LLMConfig, ChunkingConfig, BatchConfig, RetrievalConfig]:
    """Собирает конфиги из переменных окружения (и .env), остальное - по умолчанию."""
    base_url = os.getenv("OLLAMA_BASE_URL", EmbeddingConfig.base_url)
    api_key = os.getenv("OLLAMA_API_KEY", EmbeddingConfig.api_key)
    emb_cfg = EmbeddingConfig(
        base_url=base_url,
        api_key=api_key,
        model_name=os.getenv("EMBEDDING_MODEL", EmbeddingConfig.model_name),
    )
    llm_cfg = LLMConfig(
        base_url=base_url,
        api_key=api_key,
        model_name=os.getenv("LLM_MODEL", LLMConfig.model_name),
    )
    chunk_cfg = ChunkingConfig(
        target_chunk_size=int(os.getenv("CHUNK_SIZE", ChunkingConfig.target_chunk_size)),
        overlap_sentences=int(os.getenv("CHUNK_OVERLAP_SENTENCES", ChunkingConfig.overlap_sentences)),
    )
    batch_cfg = BatchConfig(
        batch_size=int(os.getenv("EMBED_BATCH_SIZE", BatchConfig.batch_size)),
        inter_batch_delay=float(os.getenv("EMBED_BATCH_DELAY", BatchConfig.inter_batch_delay)),
    )
    ret_cfg = RetrievalConfig(top_k=int(os.getenv("RETRIEVAL_TOP_K", RetrievalConfig.top_k)))
    return emb_cfg, llm_cfg, chunk_cfg, batch_cfg, ret_cfg


def get_orchestrator() -> RagOrchestrator:
    """Лениво создаёт RAG-движок, чтобы сервер стартовал без обращения к модели."""
    global _orchestrator
    if _orchestrator is None:
        with _init_lock:
            if _orchestrator is None:
                emb_cfg, llm_cfg, chunk_cfg, _, ret_cfg = load_configs()
                _orchestrator = RagOrchestrator.from_config(emb_cfg, llm_cfg, chunk_cfg, ret_cfg)
                _log.info("RAG engine ready (embedding=%s, llm=%s)", emb_cfg.model_name, llm_cfg.model_name)
    return _orchestrator


def get_pipeline() -> BatchEmbeddingPipeline:
    global _pipeline
    if _pipeline is None:
        embedder = get_orchestrator().embedder
        with _init_lock:
            if _pipeline is None:
                _, _, _, batch_cfg, _ = load_configs()
                _pipeline = BatchEmbeddingPipeline.from_config(embedder, batch_cfg)
    return _pipeline


def _to_http_error(exc: Exception) -> HTTPException:
    """Переводит исключение ядра в HTTP-ответ с подходящим статусом."""
    if isinstance(exc, RagError):
        _log.warning("%s failed: %s", exc.stage, exc.message)
        return HTTPException(status_code=exc.http_status, detail=exc.message)
    _log.exception("Unexpected error")
    return HTTPException(status_code=500, detail=str(exc))


class UploadRequest(BaseModel):
    """Тело запроса на индексацию: произвольный JSON-документ."""
    document: Any


class UploadResponse(CamelModel):
    message: str
    chunks_ingested: int


class QueryRequest(BaseModel):
    query: str


class QueryResponse(BaseModel):
    answer: str


class EmbeddingRequest(CamelModel):
    """Тело запроса на пакетный эмбеддинг.

    data должен быть массивом; streamResponse=true включает поток Server-Sent Events.
    """
    data: Any = None
    stream_response: bool = False


class EmbeddingResponse(CamelModel):
    embeddings: List[EmbeddingResult]
    total_processed: int


class EmbedSingleRequest(BaseModel):
    text: str


class EmbedSingleResponse(BaseModel):
    embedding: List[float]


class ModelInfoRequest(CamelModel):
    model_name: Optional[str] = None


class ModelInfoResponse(CamelModel):
    model_info: Dict[str, Any]


@app.get("/health")
def health() -> Dict[str, str]:
    """Простой health-check эндпоинт для мониторинга/оркестраторов."""
    return {
        "status": "Backend is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.post("/upload", response_model=UploadResponse)
def upload(req: UploadRequest) -> UploadResponse:
    """Индексирует JSON-документ во векторное хранилище в памяти."""
    try:
        chunks = get_orchestrator().ingest(req.document)
    except Exception as e:
        raise _to_http_error(e) from e
    return UploadResponse(message="Document uploaded and processed successfully", chunks_ingested=len(chunks))


@app.post("/query", response_model=QueryResponse)
def query(req: QueryRequest) -> QueryResponse:
    """Отвечает на вопрос по проиндексированным документам."""
    try:
        answer = get_orchestrator().answer(req.query)
    except Exception as e:
        raise _to_http_error(e) from e
    return QueryResponse(answer=answer)


@app.post("/embed-large-dataset")
def embed_large_dataset(req: EmbeddingRequest) -> Any:
    """Эмбеддинги для массива элементов: целиком или потоком событий.

    В потоковом режиме отдаются кадры progress / embedding / complete.
    """
    pipeline = get_pipeline()
    try:
        if req.stream_response:
            # Проверка входа происходит здесь, до начала ответа.
            events = pipeline.stream_events(req.data)
            return StreamingResponse(
                (event.to_sse() for event in events),
                media_type="text/event-stream",
                headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
            )
        results = pipeline.embed_batch(
            req.data,
            on_progress=lambda p: _log.info("Processed %d/%d", p.processed, p.total),
        )
    except Exception as e:
        raise _to_http_error(e) from e
    return EmbeddingResponse(embeddings=results, total_processed=len(results))


@app.post("/embed-single", response_model=EmbedSingleResponse)
def embed_single(req: EmbedSingleRequest) -> EmbedSingleResponse:
    try:
        embedding = get_orchestrator().embedder.embed(req.text)
    except Exception as e:
        raise _to_http_error(e) from e
    return EmbedSingleResponse(embedding=embedding)


@app.post("/model-info", response_model=ModelInfoResponse)
def model_info(req: ModelInfoRequest) -> ModelInfoResponse:
    try:
        info = get_orchestrator().embedder.model_info(req.model_name)
    except Exception as e:
        raise _to_http_error(e) from e
    return ModelInfoResponse(model_info=info)

