"""Persistent content document shared by the text and rendering stages."""
from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from logging_utils import get_logger
from pipeline_errors import StateUnavailable
from render_script import RenderScriptBuilder

logger = get_logger(__name__)


@dataclass
class Sentence:
    text: str
    keywords: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "keywords": list(self.keywords),
            "images": list(self.images),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Sentence":
        return cls(
            text=str(data.get("text", "")),
            keywords=[str(k) for k in data.get("keywords") or []],
            images=[str(i) for i in data.get("images") or []],
        )


@dataclass
class Content:
    """Aggregate describing one video: source text, sentences and their assets."""

    search_term: str
    maximum_sentences: int = 7
    lang: str = "pt"
    source_content_original: str = ""
    source_content_sanitized: str = ""
    sentences: List[Sentence] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.maximum_sentences < 0:
            raise ValueError(f"maximum_sentences must be >= 0, got {self.maximum_sentences}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "searchTerm": self.search_term,
            "maximumSentences": self.maximum_sentences,
            "lang": self.lang,
            "sourceContentOriginal": self.source_content_original,
            "sourceContentSanitized": self.source_content_sanitized,
            "sentences": [sentence.to_dict() for sentence in self.sentences],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Content":
        return cls(
            search_term=str(data.get("searchTerm", "")),
            maximum_sentences=int(data.get("maximumSentences", 7)),
            lang=str(data.get("lang") or "pt"),
            source_content_original=str(data.get("sourceContentOriginal") or ""),
            source_content_sanitized=str(data.get("sourceContentSanitized") or ""),
            sentences=[Sentence.from_dict(item) for item in data.get("sentences") or []],
        )


class StateStore:
    """Load and atomically persist the content snapshot and its render script."""

    def __init__(
        self,
        state_file: Path,
        script_file: Path,
        *,
        script_builder: Optional[RenderScriptBuilder] = None,
    ) -> None:
        self.state_file = state_file
        self.script_file = script_file
        self.script_builder = script_builder or RenderScriptBuilder()

    def exists(self) -> bool:
        return self.state_file.exists()

    def initialize(self, search_term: str, maximum_sentences: int, lang: str = "pt") -> Content:
        term = search_term.strip()
        if not term:
            raise ValueError("Search term is required")
        content = Content(search_term=term, maximum_sentences=maximum_sentences, lang=lang)
        self.save(content)
        return content

    def load(self) -> Content:
        if not self.state_file.exists():
            raise StateUnavailable(f"No content snapshot at {self.state_file}")
        try:
            data = json.loads(self.state_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StateUnavailable(f"Content snapshot unreadable: {self.state_file}") from exc
        if not isinstance(data, dict):
            raise StateUnavailable(f"Content snapshot must be a JSON object: {self.state_file}")
        try:
            content = Content.from_dict(data)
        except (TypeError, ValueError) as exc:
            raise StateUnavailable(f"Content snapshot invalid: {exc}") from exc
        logger.debug("Content loaded: %s (%d sentences)", self.state_file, len(content.sentences))
        return content

    def save(self, content: Content) -> None:
        payload = json.dumps(content.to_dict(), ensure_ascii=False, indent=2)
        _atomic_write_text(self.state_file, payload)
        logger.debug("Content saved: %s", self.state_file)

    def save_script(self, content: Content) -> Path:
        script = self.script_builder.build(content)
        _atomic_write_text(self.script_file, script)
        logger.info("Render script written: %s", self.script_file)
        return self.script_file


def _atomic_write_text(path: Path, text: str) -> None:
    """Write to a sibling temp file and swap it in, so readers never see partial output."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
