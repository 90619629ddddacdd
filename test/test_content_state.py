from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from content_state import Content, Sentence, StateStore  # noqa: E402
from pipeline_errors import StateUnavailable  # noqa: E402


def _make_store(tmp_path: Path) -> StateStore:
    return StateStore(tmp_path / "content" / "content.json", tmp_path / "content" / "script.js")


def _sample_content() -> Content:
    return Content(
        search_term="Ada Lovelace",
        maximum_sentences=2,
        source_content_original="Raw",
        source_content_sanitized="Clean",
        sentences=[
            Sentence(text="Primeira.", keywords=["a", "b"], images=["0-converted.png", "0-sentence.png"]),
            Sentence(text="Segunda.", keywords=["c"]),
        ],
    )


def test_load_without_snapshot_raises_state_unavailable(tmp_path: Path) -> None:
    store = _make_store(tmp_path)
    with pytest.raises(StateUnavailable):
        store.load()


def test_load_with_corrupt_snapshot_raises_state_unavailable(tmp_path: Path) -> None:
    store = _make_store(tmp_path)
    store.state_file.parent.mkdir(parents=True)
    store.state_file.write_text("{not json", encoding="utf-8")
    with pytest.raises(StateUnavailable):
        store.load()


def test_save_then_load_restores_content(tmp_path: Path) -> None:
    store = _make_store(tmp_path)
    content = _sample_content()

    store.save(content)
    loaded = store.load()

    assert loaded == content
    raw = json.loads(store.state_file.read_text(encoding="utf-8"))
    assert raw["searchTerm"] == "Ada Lovelace"
    assert raw["maximumSentences"] == 2
    assert raw["sentences"][0]["images"] == ["0-converted.png", "0-sentence.png"]


def test_save_overwrites_without_leaving_temp_files(tmp_path: Path) -> None:
    store = _make_store(tmp_path)
    store.save(_sample_content())
    updated = _sample_content()
    updated.sentences = updated.sentences[:1]

    store.save(updated)

    assert len(store.load().sentences) == 1
    assert [p.name for p in store.state_file.parent.iterdir()] == ["content.json"]


def test_failed_save_keeps_previous_snapshot(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store = _make_store(tmp_path)
    store.save(_sample_content())
    before = store.state_file.read_bytes()

    def broken_replace(src: str, dst: str) -> None:
        raise OSError("disk full")

    monkeypatch.setattr("content_state.os.replace", broken_replace)
    with pytest.raises(OSError):
        store.save(Content(search_term="Other"))

    assert store.state_file.read_bytes() == before
    assert [p.name for p in store.state_file.parent.iterdir()] == ["content.json"]


def test_save_script_is_byte_identical_for_unchanged_content(tmp_path: Path) -> None:
    store = _make_store(tmp_path)
    content = _sample_content()

    store.save_script(content)
    first = store.script_file.read_bytes()
    store.save_script(content)

    assert store.script_file.read_bytes() == first
    assert first.startswith(b"var content = ")


def test_initialize_creates_snapshot(tmp_path: Path) -> None:
    store = _make_store(tmp_path)
    assert not store.exists()

    content = store.initialize("  Brasil  ", 5, "pt")

    assert store.exists()
    assert content.search_term == "Brasil"
    assert store.load().maximum_sentences == 5


def test_initialize_rejects_empty_term(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        _make_store(tmp_path).initialize("   ", 3)


def test_content_rejects_negative_maximum() -> None:
    with pytest.raises(ValueError):
        Content(search_term="x", maximum_sentences=-1)
