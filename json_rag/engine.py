#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import logging
from typing import Any, List, Optional

from llama_index.core import PromptTemplate
from llama_index.core.llms import CustomLLM

from .chunking import TextChunker
from .config import ChunkingConfig, EmbeddingConfig, LLMConfig, RetrievalConfig
from .embeddings import EmbeddingClient
from .errors import MalformedInput
from .indexer import DocumentIndexer
from .llm import OpenAIChatLLM
from .models import Chunk
from .vectorstore import VectorStore

_log = logging.getLogger(__name__)

CONTEXT_PROMPT = PromptTemplate(
    (
        "Context information:\n"
        "{context_str}\n"
        "\n"
        "Question: {query_str}\n"
        "\n"
        "Please provide a comprehensive answer based on the context information provided above.\n"
        "Show the sources you have used to answer the question.\n"
    )
)


class RagOrchestrator:
    """RAG-движок: индексация документов и ответы на вопросы.

    - ingest: нарезка -> эмбеддинги -> хранилище (последовательно)
    - answer: эмбеддинг вопроса -> top-K чанков -> промпт -> генерация

    Хранилище принадлежит экземпляру, поэтому несколько движков не
    пересекаются по данным.
    """
    def __init__(
        self,
        embedder: EmbeddingClient,
        llm: CustomLLM,
        store: Optional[VectorStore] = None,
        chunker: Optional[TextChunker] = None,
        top_k: int = 3,
    ) -> None:
        self.embedder = embedder
        self.llm = llm
        self.store = store if store is not None else VectorStore()
        self.chunker = chunker or TextChunker()
        self.top_k = top_k
        self._indexer = DocumentIndexer(self.chunker, self.embedder, self.store)

    @classmethod
    def from_config(
        cls,
        emb_cfg: EmbeddingConfig,
        llm_cfg: LLMConfig,
        chunk_cfg: ChunkingConfig,
        ret_cfg: RetrievalConfig,
    ) -> "RagOrchestrator":
        return cls(
            embedder=EmbeddingClient.from_config(emb_cfg),
            llm=OpenAIChatLLM.from_config(llm_cfg),
            chunker=TextChunker.from_config(chunk_cfg),
            top_k=ret_cfg.top_k,
        )

    def ingest(self, document: Any) -> List[Chunk]:
        return self._indexer.ingest(document)

    def retrieve(self, query: str, top_k: Optional[int] = None) -> List[str]:
        """Тексты наиболее похожих чанков; пустое хранилище не вызывает эмбеддинг."""
        if len(self.store) == 0:
            return []
        query_embedding = self.embedder.embed(query)
        return self.store.search(query_embedding, top_k if top_k is not None else self.top_k)

    @staticmethod
    def build_prompt(query: str, context: List[str]) -> str:
        """Промпт с контекстом, либо сам вопрос, если контекста нет."""
        if not context:
            return query
        return CONTEXT_PROMPT.format(context_str="\n\n".join(context), query_str=query)

    def answer(self, query: str) -> str:
        if not query or not query.strip():
            raise MalformedInput("Query must not be empty")
        context = self.retrieve(query)
        _log.info("Answering query with %d context chunks", len(context))
        prompt = self.build_prompt(query, context)
        return self.llm.complete(prompt).text


__all__ = ["RagOrchestrator", "CONTEXT_PROMPT"]
