#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Пакетное построение эмбеддингов для больших коллекций.

Элементы обрабатываются батчами: внутри батча запросы идут параллельно,
между батчами выдерживается фиксированная пауза, чтобы не перегружать
сервис эмбеддингов. Ошибка одного элемента не прерывает обработку:
элемент просто пропадает из результата.
"""

from __future__ import annotations

import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

from .config import BatchConfig
from .errors import MalformedInput
from .models import CompletionSummary, EmbeddingResult, StreamEvent, StreamingProgress, ensure_json_value

_log = logging.getLogger(__name__)

ProgressCallback = Callable[[StreamingProgress], None]


def item_to_text(item: Any) -> str:
    """Строки передаются как есть, остальные JSON-значения сериализуются."""
    if isinstance(item, str):
        return item
    return json.dumps(item, ensure_ascii=False)


class BatchEmbeddingPipeline:
    def __init__(
        self,
        embedder: Any,
        batch_size: int = 5,
        inter_batch_delay: float = 0.1,
        preview_length: int = 100,
    ) -> None:
        """
        Args:
            embedder: объект с методом embed(text) -> List[float] (EmbeddingClient)
            batch_size: размер батча и число одновременных запросов
            inter_batch_delay: пауза между батчами, секунды
            preview_length: длина превью текста в результатах
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.embedder = embedder
        self.batch_size = batch_size
        self.inter_batch_delay = inter_batch_delay
        self.preview_length = preview_length

    @classmethod
    def from_config(cls, embedder: Any, cfg: BatchConfig) -> "BatchEmbeddingPipeline":
        return cls(
            embedder,
            batch_size=cfg.batch_size,
            inter_batch_delay=cfg.inter_batch_delay,
            preview_length=cfg.preview_length,
        )

    def _validate(self, items: Any) -> List[Any]:
        if not isinstance(items, list):
            raise MalformedInput(f"Data must be an array, got {type(items).__name__}")
        return [ensure_json_value(item) for item in items]

    def _embed_item(self, index: int, text: str) -> Optional[EmbeddingResult]:
        try:
            embedding = self.embedder.embed(text)
        except Exception as exc:  # noqa: BLE001
            _log.warning("Skipping item %d: embedding failed: %s", index, exc)
            return None
        return EmbeddingResult(embedding=embedding, original_index=index, text=text[: self.preview_length])

    def _run_batches(
        self, items: Sequence[Any]
    ) -> Iterator[Tuple[List[EmbeddingResult], StreamingProgress]]:
        total = len(items)
        _log.info("Embedding %d items in batches of %d", total, self.batch_size)
        with ThreadPoolExecutor(max_workers=self.batch_size) as pool:
            for start in range(0, total, self.batch_size):
                if start:
                    time.sleep(self.inter_batch_delay)
                texts = [item_to_text(item) for item in items[start : start + self.batch_size]]
                # Индекс фиксируется при отправке, поэтому порядок завершения не важен.
                futures = [pool.submit(self._embed_item, start + offset, text) for offset, text in enumerate(texts)]
                results = [r for r in (f.result() for f in futures) if r is not None]
                progress = StreamingProgress(
                    processed=start + len(texts),
                    total=total,
                    current_item=texts[-1][: self.preview_length],
                )
                _log.debug("Batch at %d: %d/%d embedded", start, len(results), len(texts))
                yield results, progress

    def _result_stream(self, items: List[Any], on_progress: Optional[ProgressCallback]) -> Iterator[EmbeddingResult]:
        for results, progress in self._run_batches(items):
            yield from results
            if on_progress is not None:
                on_progress(progress)

    def iter_results(self, items: Any, on_progress: Optional[ProgressCallback] = None) -> Iterator[EmbeddingResult]:
        """Ленивая последовательность результатов, батч за батчем.

        Внутри батча результаты идут в порядке отправки; глобальная
        сортировка не выполняется. Каждый вызов начинает обработку заново.
        """
        return self._result_stream(self._validate(items), on_progress)

    def embed_batch(self, items: Any, on_progress: Optional[ProgressCallback] = None) -> List[EmbeddingResult]:
        """Все результаты, отсортированные по original_index."""
        results = list(self.iter_results(items, on_progress))
        results.sort(key=lambda r: r.original_index)
        _log.info("Embedded %d items", len(results))
        return results

    def _event_stream(self, items: List[Any]) -> Iterator[StreamEvent]:
        emitted = 0
        for results, progress in self._run_batches(items):
            for result in results:
                emitted += 1
                yield StreamEvent(event="embedding", data=result)
            yield StreamEvent(event="progress", data=progress)
        yield StreamEvent(event="complete", data=CompletionSummary(total_processed=emitted))

    def stream_events(self, items: Any) -> Iterator[StreamEvent]:
        """Поток типизированных событий: embedding, progress после каждого батча, complete в конце."""
        return self._event_stream(self._validate(items))


__all__ = ["BatchEmbeddingPipeline", "ProgressCallback", "item_to_text"]
