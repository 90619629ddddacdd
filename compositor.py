"""Raster composition for sentence backgrounds, captions and thumbnails."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from PIL import Image, ImageDraw, ImageFilter

from image_utils import (
    contain_image,
    draw_kerned_text,
    fit_image,
    line_height,
    load_font,
    max_line_width,
    wrap_words,
)
from logging_utils import get_logger
from pipeline_errors import CompositionFailed
from sentence_templates import Anchor

logger = get_logger(__name__)


@dataclass(frozen=True)
class BlendInstruction:
    """Blurred cover background with the sharp source contained on top."""

    source: Path
    width: int = 1920
    height: int = 1080
    blur_radius: float = 9.0
    background: str = "white"


@dataclass(frozen=True)
class CaptionInstruction:
    """Transparent canvas with ``text`` wrapped and auto-sized to the box."""

    text: str
    width: int
    height: int
    anchor: Anchor = Anchor.CENTER
    fill: Tuple[int, int, int, int] = (255, 255, 255, 255)
    kerning: float = -1.0
    font_path: Optional[str] = None
    max_font_size: int = 120
    min_font_size: int = 12
    line_spacing: float = 1.15


@dataclass(frozen=True)
class ThumbnailInstruction:
    source: Path
    max_width: int = 1280
    max_height: int = 720
    quality: int = 90


Instruction = Union[BlendInstruction, CaptionInstruction, ThumbnailInstruction]


class Compositor(ABC):

    @abstractmethod
    def compose(self, instruction: Instruction, output_path: Path) -> None:
        """Render ``instruction`` into ``output_path`` or raise ``CompositionFailed``."""


class PillowCompositor(Compositor):

    def __init__(self, config: Dict[str, Any] | None = None) -> None:
        config = config or {}
        images_cfg = config.get("images", {}) if isinstance(config, dict) else {}
        self.font_path: Optional[str] = images_cfg.get("caption_font_path") or None

    def compose(self, instruction: Instruction, output_path: Path) -> None:
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(instruction, BlendInstruction):
                self._blend(instruction, output_path)
            elif isinstance(instruction, CaptionInstruction):
                self._caption(instruction, output_path)
            elif isinstance(instruction, ThumbnailInstruction):
                self._thumbnail(instruction, output_path)
            else:
                raise CompositionFailed(f"Unsupported instruction: {type(instruction).__name__}")
        except CompositionFailed:
            raise
        except (OSError, ValueError) as exc:
            raise CompositionFailed(f"{output_path.name}: {exc}") from exc

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _blend(self, instruction: BlendInstruction, output_path: Path) -> None:
        source = _open_first_frame(instruction.source)
        size = (instruction.width, instruction.height)

        backdrop = fit_image(source, size).filter(ImageFilter.GaussianBlur(instruction.blur_radius))
        canvas = Image.new("RGBA", size, instruction.background)
        canvas.alpha_composite(backdrop)

        # 前景は縦横比を保ったまま中央に置く

        foreground = contain_image(source, size)
        offset = ((size[0] - foreground.width) // 2, (size[1] - foreground.height) // 2)
        canvas.alpha_composite(foreground, dest=offset)

        canvas.convert("RGB").save(output_path, format="PNG")
        logger.info("Image converted: %s", instruction.source)

    def _caption(self, instruction: CaptionInstruction, output_path: Path) -> None:
        size = (instruction.width, instruction.height)
        if size[0] <= 0 or size[1] <= 0:
            raise ValueError(f"Caption size must be positive, got {size}")
        canvas = Image.new("RGBA", size, (0, 0, 0, 0))
        text = " ".join(instruction.text.split())
        if text:
            font_path = instruction.font_path or self.font_path
            font, lines, step = _fit_caption(text, instruction, font_path)
            draw = ImageDraw.Draw(canvas)
            block_height = step * len(lines)
            top = _vertical_origin(instruction.anchor, size[1], block_height)
            for row, line in enumerate(lines):
                width = max_line_width([line], font, instruction.kerning)
                left = _horizontal_origin(instruction.anchor, size[0], width)
                draw_kerned_text(
                    draw,
                    xy=(left, top + row * step),
                    text=line,
                    font=font,
                    fill=instruction.fill,
                    kerning=instruction.kerning,
                )
        canvas.save(output_path, format="PNG")
        logger.info("Sentence created: %s", output_path)

    def _thumbnail(self, instruction: ThumbnailInstruction, output_path: Path) -> None:
        image = _open_first_frame(instruction.source).convert("RGB")
        image.thumbnail((instruction.max_width, instruction.max_height))
        image.save(output_path, format="JPEG", quality=instruction.quality)
        logger.info("Thumbnail created: %s", output_path)


def _open_first_frame(path: Path) -> Image.Image:
    if not path.exists():
        raise FileNotFoundError(f"Source image missing: {path}")
    with Image.open(path) as image:
        # GIF などは先頭フレームのみ使う
        image.seek(0)
        return image.convert("RGBA")


def _fit_caption(text: str, instruction: CaptionInstruction, font_path: Optional[str]):
    """Pick the largest font size whose wrapped lines fit the caption box."""
    width, height = instruction.width, instruction.height
    size = max(instruction.max_font_size, instruction.min_font_size)
    lines: List[str] = []
    while True:
        font = load_font(font_path, size)
        lines = wrap_words(text, font, width, instruction.kerning)
        step = int(round(line_height(font) * instruction.line_spacing))
        fits = (
            max_line_width(lines, font, instruction.kerning) <= width
            and step * len(lines) <= height
        )
        if fits or size <= instruction.min_font_size:
            return font, lines, step
        size = max(instruction.min_font_size, int(size * 0.9))


def _horizontal_origin(anchor: Anchor, canvas_width: int, content_width: float) -> float:
    if anchor in (Anchor.WEST, Anchor.NORTHWEST, Anchor.SOUTHWEST):
        return 0.0
    if anchor in (Anchor.EAST, Anchor.NORTHEAST, Anchor.SOUTHEAST):
        return max(0.0, canvas_width - content_width)
    return max(0.0, (canvas_width - content_width) / 2)


def _vertical_origin(anchor: Anchor, canvas_height: int, content_height: float) -> float:
    if anchor in (Anchor.NORTH, Anchor.NORTHWEST, Anchor.NORTHEAST):
        return 0.0
    if anchor in (Anchor.SOUTH, Anchor.SOUTHWEST, Anchor.SOUTHEAST):
        return max(0.0, canvas_height - content_height)
    return max(0.0, (canvas_height - content_height) / 2)
