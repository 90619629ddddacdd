from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import List, Optional

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from compositor import Compositor, Instruction  # noqa: E402
from content_state import Content, Sentence, StateStore  # noqa: E402
from image_stage import ImageStageRunner  # noqa: E402
from pipeline_errors import (  # noqa: E402
    CompositionFailed,
    RenderProcessFailed,
    SourceUnavailable,
    StateUnavailable,
    TemplateNotFound,
)
from render_supervisor import RenderCommand  # noqa: E402
from sentence_templates import SentenceTemplateTable  # noqa: E402
from text_stage import TextStage  # noqa: E402
from video_pipeline import PipelineCoordinator  # noqa: E402


class RecordingCompositor(Compositor):
    def __init__(self, events: List[str], fail_on: Optional[str] = None) -> None:
        self.events = events
        self.fail_on = fail_on

    def compose(self, instruction: Instruction, output_path: Path) -> None:
        self.events.append(f"compose:{output_path.name}")
        if output_path.name == self.fail_on:
            raise CompositionFailed("bad image")


class FakeSupervisor:
    def __init__(self, events: List[str], store: StateStore, exit_code: int = 0) -> None:
        self.events = events
        self.store = store
        self.exit_code = exit_code
        self.commands: List[RenderCommand] = []
        self.script_seen: Optional[str] = None

    def run(self, command: RenderCommand) -> int:
        self.events.append("render")
        self.commands.append(command)
        self.script_seen = self.store.script_file.read_text(encoding="utf-8")
        if self.exit_code != 0:
            raise RenderProcessFailed(exit_code=self.exit_code)
        return self.exit_code


class FakeSource:
    def __init__(self, text: str = "Um. Dois. Três.", error: Exception | None = None) -> None:
        self.text = text
        self.error = error

    def fetch(self, term: str, locale: str) -> str:
        if self.error:
            raise self.error
        return self.text


class FakeExtractor:
    def extract(self, sentence_text: str, locale: str, limit: int) -> List[str]:
        return [sentence_text.rstrip(".").lower()][:limit]


def _store(tmp_path: Path) -> StateStore:
    return StateStore(tmp_path / "content.json", tmp_path / "after-effects-script.js")


def _seed(store: StateStore, sentences: int) -> Content:
    content = Content(
        search_term="Teste",
        maximum_sentences=sentences,
        sentences=[Sentence(text=f"Frase {i}.") for i in range(sentences)],
    )
    store.save(content)
    return content


def _coordinator(tmp_path: Path, events: List[str], *, fail_on: Optional[str] = None, exit_code: int = 0):
    store = _store(tmp_path)
    supervisor = FakeSupervisor(events, store, exit_code=exit_code)
    coordinator = PipelineCoordinator(
        store=store,
        text_stage=TextStage(text_source=FakeSource(), keyword_extractor=FakeExtractor()),
        image_runner=ImageStageRunner(
            content_dir=tmp_path,
            templates=SentenceTemplateTable(),
            compositor=RecordingCompositor(events, fail_on=fail_on),
        ),
        supervisor=supervisor,  # type: ignore[arg-type]
        render_command=RenderCommand("aerender", "main", tmp_path / "t.aep", tmp_path / "output.mov"),
    )
    return coordinator, store, supervisor


def test_text_stage_requires_snapshot(tmp_path: Path) -> None:
    coordinator, _, _ = _coordinator(tmp_path, [])
    with pytest.raises(StateUnavailable):
        coordinator.run_text_stage()


def test_text_stage_persists_sentences(tmp_path: Path) -> None:
    coordinator, store, _ = _coordinator(tmp_path, [])
    store.initialize("Teste", 2)

    coordinator.run_text_stage()

    loaded = store.load()
    assert [s.text for s in loaded.sentences] == ["Um.", "Dois."]
    assert loaded.sentences[1].keywords == ["dois"]


def test_text_stage_failure_leaves_snapshot_untouched(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.initialize("Teste", 2)
    before = store.state_file.read_bytes()
    coordinator = PipelineCoordinator(
        store=store,
        text_stage=TextStage(text_source=FakeSource(error=SourceUnavailable("down")), keyword_extractor=FakeExtractor()),
    )

    with pytest.raises(SourceUnavailable):
        coordinator.run_text_stage()

    assert store.state_file.read_bytes() == before


def test_rendering_stage_runs_in_order_and_records_images(tmp_path: Path) -> None:
    events: List[str] = []
    coordinator, store, supervisor = _coordinator(tmp_path, events)
    _seed(store, 2)

    result = coordinator.run_rendering_stage()

    assert events == [
        "compose:0-converted.png",
        "compose:0-sentence.png",
        "compose:1-converted.png",
        "compose:1-sentence.png",
        "compose:youtube-thumbnail.jpg",
        "render",
    ]
    assert supervisor.script_seen is not None
    assert '"1-sentence.png"' in supervisor.script_seen
    loaded = store.load()
    assert loaded.sentences[0].images == ["0-converted.png", "0-sentence.png"]
    assert result.video_path == tmp_path / "output.mov"
    assert result.exit_code == 0


def test_composition_failure_skips_script_render_and_save(tmp_path: Path) -> None:
    events: List[str] = []
    coordinator, store, _ = _coordinator(tmp_path, events, fail_on="2-sentence.png")
    _seed(store, 4)
    before = store.state_file.read_bytes()

    with pytest.raises(CompositionFailed) as excinfo:
        coordinator.run_rendering_stage()

    assert excinfo.value.sentence_index == 2
    assert "compose:3-converted.png" not in events
    assert "render" not in events
    assert not store.script_file.exists()
    assert store.state_file.read_bytes() == before


def test_too_many_sentences_fails_before_any_image_work(tmp_path: Path) -> None:
    events: List[str] = []
    coordinator, store, _ = _coordinator(tmp_path, events)
    _seed(store, 8)

    with pytest.raises(TemplateNotFound) as excinfo:
        coordinator.run_rendering_stage()

    assert excinfo.value.index == 7
    assert events == []


def test_render_failure_propagates_without_saving(tmp_path: Path) -> None:
    events: List[str] = []
    coordinator, store, _ = _coordinator(tmp_path, events, exit_code=1)
    _seed(store, 1)

    with pytest.raises(RenderProcessFailed) as excinfo:
        coordinator.run_rendering_stage()

    assert excinfo.value.exit_code == 1
    saved = json.loads(store.state_file.read_text(encoding="utf-8"))
    assert saved["sentences"][0]["images"] == []
    assert store.script_file.exists()
