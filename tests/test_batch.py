"""
Тесты пакетного построения эмбеддингов (BatchEmbeddingPipeline).

Сценарии:
- Итог упорядочен по original_index, даже если элементы батча завершаются не по порядку
- Ошибка элемента не прерывает обработку: элемент отсутствует в результате
- Прогресс после каждого батча, пауза между батчами
- Ограничение параллелизма размером батча
- Поток событий embedding / progress / complete
- Некорректный вход отклоняется сразу (MalformedInput)

Запуск тестов:
  pytest -q tests/test_batch.py
"""

import threading
import time
from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest

import json_rag.batch as batch_mod
from json_rag.batch import BatchEmbeddingPipeline, item_to_text
from json_rag.errors import MalformedInput, UpstreamError


class _DummyEmbedder:
    """Эмбеддер-заглушка: вектор [index] по словарю, опциональные задержки и сбои."""

    def __init__(
        self,
        mapping: Optional[Dict[str, int]] = None,
        delays: Optional[Dict[str, float]] = None,
        failing: tuple = (),
    ) -> None:
        self.mapping = mapping or {}
        self.delays = delays or {}
        self.failing = failing
        self.calls: List[str] = []
        self.completed: List[str] = []
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0

    def embed(self, text: str) -> List[float]:
        with self._lock:
            self.calls.append(text)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            time.sleep(self.delays.get(text, 0.0))
            if text in self.failing:
                raise UpstreamError(f"cannot embed {text}")
            if text in self.mapping:
                return [float(self.mapping[text])]
            return [float(len(text))]
        finally:
            with self._lock:
                self.active -= 1
                self.completed.append(text)


def _pipeline(embedder, batch_size: int = 2, **kwargs) -> BatchEmbeddingPipeline:
    kwargs.setdefault("inter_batch_delay", 0.0)
    return BatchEmbeddingPipeline(embedder, batch_size=batch_size, **kwargs)


def test_results_are_ordered_by_original_index_despite_completion_order() -> None:
    embedder = _DummyEmbedder(mapping={"x": 0, "y": 1, "z": 2}, delays={"x": 0.1})
    results = _pipeline(embedder, batch_size=2).embed_batch(["x", "y", "z"])

    assert embedder.completed.index("y") < embedder.completed.index("x")
    assert [r.embedding for r in results] == [[0.0], [1.0], [2.0]]
    assert [r.original_index for r in results] == [0, 1, 2]
    assert [r.text for r in results] == ["x", "y", "z"]


def test_failed_items_are_dropped_not_fatal() -> None:
    embedder = _DummyEmbedder(failing=("b", "d"))
    results = _pipeline(embedder, batch_size=2).embed_batch(["a", "b", "c", "d", "e"])

    assert [r.original_index for r in results] == [0, 2, 4]
    assert len(embedder.calls) == 5


def test_empty_string_item_is_dropped() -> None:
    class _StrictEmbedder(_DummyEmbedder):
        def embed(self, text: str) -> List[float]:
            if not text:
                raise ValueError("Cannot embed empty text")
            return super().embed(text)

    results = _pipeline(_StrictEmbedder()).embed_batch(["ok", ""])
    assert [r.original_index for r in results] == [0]


def test_progress_after_each_batch() -> None:
    seen = []
    _pipeline(_DummyEmbedder(), batch_size=2).embed_batch(["a", "b", "c", "d", "e"], on_progress=seen.append)

    assert [(p.processed, p.total, p.current_item) for p in seen] == [
        (2, 5, "b"),
        (4, 5, "d"),
        (5, 5, "e"),
    ]


def test_fixed_delay_between_batches(monkeypatch) -> None:
    sleeps: List[float] = []
    monkeypatch.setattr(batch_mod, "time", SimpleNamespace(sleep=sleeps.append))

    _pipeline(_DummyEmbedder(), batch_size=2, inter_batch_delay=0.25).embed_batch(["a", "b", "c", "d", "e"])

    assert sleeps == [0.25, 0.25]


def test_concurrency_is_bounded_by_batch_size() -> None:
    items = [f"item-{i}" for i in range(9)]
    embedder = _DummyEmbedder(delays={item: 0.05 for item in items})

    results = _pipeline(embedder, batch_size=3).embed_batch(items)

    assert len(results) == 9
    assert 1 < embedder.max_active <= 3


def test_non_string_items_are_serialized() -> None:
    assert item_to_text("plain") == "plain"
    assert item_to_text({"k": [1, 2]}) == '{"k": [1, 2]}'
    assert item_to_text(None) == "null"
    assert item_to_text(3.5) == "3.5"

    results = _pipeline(_DummyEmbedder()).embed_batch([{"k": 1}, 42])
    assert [r.text for r in results] == ['{"k": 1}', "42"]


def test_text_preview_is_truncated() -> None:
    results = _pipeline(_DummyEmbedder(), preview_length=10).embed_batch(["a" * 300])

    assert results[0].text == "a" * 10
    assert results[0].embedding == [300.0]


def test_iter_results_is_lazy_and_restartable() -> None:
    embedder = _DummyEmbedder(mapping={"x": 0, "y": 1, "z": 2})
    pipeline = _pipeline(embedder, batch_size=2)

    stream = pipeline.iter_results(["x", "y", "z"])
    assert embedder.calls == []

    first = [r.original_index for r in stream]
    second = [r.original_index for r in pipeline.iter_results(["x", "y", "z"])]
    assert first == second == [0, 1, 2]


def test_stream_events_sequence() -> None:
    embedder = _DummyEmbedder(mapping={"x": 0, "y": 1, "z": 2})
    events = list(_pipeline(embedder, batch_size=2).stream_events(["x", "y", "z"]))

    assert [e.event for e in events] == [
        "embedding",
        "embedding",
        "progress",
        "embedding",
        "progress",
        "complete",
    ]
    assert events[-1].data.total_processed == 3
    assert '"totalProcessed":3' in events[-1].to_sse()
    assert events[0].to_sse().startswith("event: embedding\ndata: ")
    assert '"originalIndex":0' in events[0].to_sse()
    assert events[2].to_sse().endswith("\n\n")


def test_stream_events_counts_only_successes() -> None:
    events = list(_pipeline(_DummyEmbedder(failing=("b",))).stream_events(["a", "b", "c"]))

    assert events[-1].event == "complete"
    assert events[-1].data.total_processed == 2
    assert [e.data.processed for e in events if e.event == "progress"] == [2, 3]


def test_empty_items() -> None:
    pipeline = _pipeline(_DummyEmbedder())

    assert pipeline.embed_batch([]) == []
    events = list(pipeline.stream_events([]))
    assert [e.event for e in events] == ["complete"]
    assert events[0].data.total_processed == 0


@pytest.mark.parametrize("bad", ["not a list", {"a": 1}, None, [{1, 2}], [object()]])
def test_malformed_input_rejected_eagerly(bad) -> None:
    embedder = _DummyEmbedder()
    pipeline = _pipeline(embedder)

    with pytest.raises(MalformedInput):
        pipeline.embed_batch(bad)
    with pytest.raises(MalformedInput):
        pipeline.stream_events(bad)
    with pytest.raises(MalformedInput):
        pipeline.iter_results(bad)
    assert embedder.calls == []


def test_invalid_batch_size() -> None:
    with pytest.raises(ValueError):
        BatchEmbeddingPipeline(_DummyEmbedder(), batch_size=0)
