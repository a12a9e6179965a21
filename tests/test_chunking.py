"""
Тесты нарезки JSON-документов на чанки (TextChunker).

Сценарии:
- Разбиение на предложения сохраняет текст дословно
- Чанки без перекрытия склеиваются в исходный сериализованный текст
- С перекрытием следующий чанк начинается с последнего предложения предыдущего
- Размер чанка ограничен, кроме одиночного слишком длинного предложения
- Пустой и некорректный вход

Запуск тестов:
  pytest -q tests/test_chunking.py
"""

import pytest
from pydantic import ValidationError

from json_rag.chunking import TextChunker, serialize_document, split_units
from json_rag.errors import MalformedInput


DOC = {
    "title": "Quarterly report",
    "body": "First sentence. Second one! Is this the third? " * 12,
    "items": [1, 2.5, None, True],
}


def test_split_units_keeps_terminators_and_tail() -> None:
    assert split_units("One. Two!\nThree") == ["One.", " Two!\n", "Three"]
    assert split_units("..a") == ["..", "a"]
    assert split_units("") == []


def test_split_units_reconstructs_serialized_document() -> None:
    text = serialize_document(DOC)
    assert "".join(split_units(text)) == text


def test_serialize_document_is_pretty_printed_utf8() -> None:
    assert serialize_document({"город": "Москва"}) == '{\n  "город": "Москва"\n}'


def test_chunks_without_overlap_reconstruct_text() -> None:
    chunks = TextChunker(target_chunk_size=60, overlap_sentences=0).chunk(DOC)

    assert len(chunks) > 1
    assert "".join(c.content for c in chunks) == serialize_document(DOC)


def test_overlap_seeds_next_chunk_with_last_sentence() -> None:
    chunks = TextChunker(target_chunk_size=60, overlap_sentences=1).chunk(DOC)
    assert len(chunks) > 1

    rebuilt = chunks[0].content
    for prev, nxt in zip(chunks, chunks[1:]):
        overlap = split_units(prev.content)[-1]
        assert nxt.content.startswith(overlap)
        rebuilt += nxt.content[len(overlap):]
    assert rebuilt == serialize_document(DOC)


def test_chunk_size_bound_except_single_oversized_sentence() -> None:
    doc = {"a": "short. " * 10 + "x" * 200 + ". tail."}
    chunks = TextChunker(target_chunk_size=50, overlap_sentences=0).chunk(doc)

    oversized = [c for c in chunks if len(c.content) > 50]
    assert oversized, "the long sentence must survive as its own chunk"
    for c in oversized:
        assert len(split_units(c.content)) == 1
    assert "x" * 200 in oversized[0].content


def test_cat_dog_bird_document_with_small_target() -> None:
    target = 20
    chunks = TextChunker(target_chunk_size=target, overlap_sentences=1).chunk(
        {"a": "The cat sat. The dog ran. The bird flew."}
    )

    assert len(chunks) >= 2
    assert len(chunks[0].content) <= target
    for prev, nxt in zip(chunks, chunks[1:]):
        overlap = split_units(prev.content)[-1]
        assert len(nxt.content) - len(overlap) <= target


def test_ids_and_metadata_are_sequential() -> None:
    chunks = TextChunker(target_chunk_size=40).chunk(DOC)

    assert [c.id for c in chunks] == [f"chunk_{i}" for i in range(len(chunks))]
    for i, c in enumerate(chunks):
        assert c.metadata == {"source": "uploaded_document", "chunk_index": i}
        assert c.embedding is None
        assert c.content


def test_small_document_is_single_chunk() -> None:
    chunks = TextChunker().chunk("Hello there.")

    assert len(chunks) == 1
    assert chunks[0].content == '"Hello there."'


@pytest.mark.parametrize("empty", [None, "", [], {}])
def test_empty_input_yields_no_chunks(empty) -> None:
    assert TextChunker().chunk(empty) == []


@pytest.mark.parametrize("bad", [{1, 2}, object(), (1, 2), {1: "int key"}])
def test_non_json_input_is_rejected(bad) -> None:
    with pytest.raises(MalformedInput):
        TextChunker().chunk(bad)


def test_invalid_settings() -> None:
    with pytest.raises(ValueError):
        TextChunker(target_chunk_size=0)
    with pytest.raises(ValueError):
        TextChunker(overlap_sentences=-1)


def test_chunks_are_immutable_and_embedded_once() -> None:
    chunk = TextChunker().chunk({"a": "b"})[0]

    with pytest.raises(ValidationError):
        chunk.content = "changed"  # type: ignore[misc]

    embedded = chunk.with_embedding([0.1, 0.2])
    assert chunk.embedding is None
    assert embedded.embedding == (0.1, 0.2)
    with pytest.raises(ValueError):
        embedded.with_embedding([0.3, 0.4])
