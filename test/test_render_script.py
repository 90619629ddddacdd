from __future__ import annotations

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from content_state import Content, Sentence  # noqa: E402
from render_script import RenderScriptBuilder  # noqa: E402


def _content() -> Content:
    return Content(
        search_term="São Paulo",
        maximum_sentences=3,
        source_content_original="ignored",
        sentences=[
            Sentence(text="Uma cidade.", keywords=["cidade"], images=["0-converted.png", "0-sentence.png"]),
            Sentence(text="Muito grande.", keywords=["grande"], images=["1-converted.png", "1-sentence.png"]),
        ],
    )


def test_build_is_deterministic() -> None:
    builder = RenderScriptBuilder()
    content = _content()
    assert builder.build(content) == builder.build(content)
    assert RenderScriptBuilder().build(_content()) == builder.build(content)


def test_build_keeps_sentence_order_and_assets() -> None:
    script = RenderScriptBuilder().build(_content())

    assert script.startswith("var content = ")
    assert script.endswith(";\n")
    payload = json.loads(script[len("var content = "):-2])
    assert payload["searchTerm"] == "São Paulo"
    assert [s["text"] for s in payload["sentences"]] == ["Uma cidade.", "Muito grande."]
    assert [s["index"] for s in payload["sentences"]] == [0, 1]
    assert payload["sentences"][1]["images"] == ["1-converted.png", "1-sentence.png"]
    assert "sourceContentOriginal" not in payload


def test_build_changes_when_content_changes() -> None:
    builder = RenderScriptBuilder()
    content = _content()
    before = builder.build(content)
    content.sentences[0].keywords.append("nova")
    assert builder.build(content) != before
