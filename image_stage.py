"""Per-sentence background, caption and thumbnail generation."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from compositor import (
    BlendInstruction,
    CaptionInstruction,
    Compositor,
    PillowCompositor,
    ThumbnailInstruction,
)
from logging_utils import get_logger
from pipeline_errors import CompositionFailed
from sentence_templates import SentenceTemplateTable

logger = get_logger(__name__)


ORIGINAL_ROLE = "original"
CONVERTED_ROLE = "converted"
SENTENCE_ROLE = "sentence"
THUMBNAIL_NAME = "youtube-thumbnail.jpg"


def asset_name(index: int, role: str) -> str:
    return f"{index}-{role}.png"


@dataclass
class SentenceAssets:
    index: int
    converted_path: Path
    sentence_path: Path

    def references(self) -> List[str]:
        return [self.converted_path.name, self.sentence_path.name]


@dataclass
class ImageStageResult:
    sentences: List[SentenceAssets] = field(default_factory=list)
    thumbnail_path: Optional[Path] = None


class ImageStageRunner:
    """Render the converted background and caption overlay for every sentence.

    Indices are processed strictly in order, background before caption, and the
    thumbnail is derived from index 0 only after every index has finished. The
    first ``CompositionFailed`` stops the stage and carries the failing index.
    """

    def __init__(
        self,
        *,
        content_dir: Path,
        templates: SentenceTemplateTable,
        compositor: Optional[Compositor] = None,
        config: Dict[str, Any] | None = None,
    ) -> None:
        config = config or {}
        images_cfg = config.get("images", {}) if isinstance(config, dict) else {}
        self.content_dir = content_dir
        self.templates = templates
        self.compositor = compositor or PillowCompositor(config)
        self.width = int(images_cfg.get("width", 1920))
        self.height = int(images_cfg.get("height", 1080))
        self.blur_radius = float(images_cfg.get("blur_radius", 9.0))
        self.kerning = float(images_cfg.get("kerning", -1))
        self.max_font_size = int(images_cfg.get("max_font_size", 120))

    def run(self, sentence_texts: Sequence[str]) -> ImageStageResult:
        logger.info("Rendering images for %d sentences", len(sentence_texts))
        self.content_dir.mkdir(parents=True, exist_ok=True)
        result = ImageStageResult()
        for index, text in enumerate(sentence_texts):
            try:
                converted = self.convert_image(index)
                sentence = self.create_sentence_image(index, text)
            except CompositionFailed as exc:
                # どの文で失敗したかを呼び出し側に残す
                if exc.sentence_index is None:
                    exc.sentence_index = index
                logger.error("Image stage aborted at sentence %d: %s", index, exc.reason)
                raise
            result.sentences.append(SentenceAssets(index=index, converted_path=converted, sentence_path=sentence))

        if result.sentences:
            result.thumbnail_path = self.create_thumbnail()
        else:
            logger.warning("No sentences to render; skipping thumbnail")
        return result

    def convert_image(self, index: int) -> Path:
        source = self.content_dir / asset_name(index, ORIGINAL_ROLE)
        output = self.content_dir / asset_name(index, CONVERTED_ROLE)
        instruction = BlendInstruction(
            source=source,
            width=self.width,
            height=self.height,
            blur_radius=self.blur_radius,
        )
        self.compositor.compose(instruction, output)
        return output

    def create_sentence_image(self, index: int, text: str) -> Path:
        template = self.templates.lookup(index)
        output = self.content_dir / asset_name(index, SENTENCE_ROLE)
        instruction = CaptionInstruction(
            text=text,
            width=template.width,
            height=template.height,
            anchor=template.anchor,
            kerning=self.kerning,
            max_font_size=self.max_font_size,
        )
        self.compositor.compose(instruction, output)
        return output

    def create_thumbnail(self) -> Path:
        source = self.content_dir / asset_name(0, CONVERTED_ROLE)
        output = self.content_dir / THUMBNAIL_NAME
        logger.info("Creating YouTube thumbnail")
        self.compositor.compose(ThumbnailInstruction(source=source), output)
        return output
