"""Pillow helpers shared by the compositor."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

if hasattr(Image, "Resampling"):
    _RESAMPLE = Image.Resampling.LANCZOS  # type: ignore[attr-defined]
else:  # pragma: no cover - Pillow < 9.1 fallback
    _RESAMPLE = Image.LANCZOS  # type: ignore[attr-defined]


def fit_image(image: Image.Image, target: Tuple[int, int]) -> Image.Image:
    """Resize and crop an image so it covers the target rectangle."""

    target_w, target_h = target
    if target_w <= 0 or target_h <= 0:
        raise ValueError("Target size must be positive")

    src_w, src_h = image.size
    if src_w == 0 or src_h == 0:
        raise ValueError("Source image is empty")

    scale = max(target_w / src_w, target_h / src_h)
    new_size = (max(1, int(round(src_w * scale))), max(1, int(round(src_h * scale))))
    resized = image.resize(new_size, _RESAMPLE)

    left = max(0, (resized.width - target_w) // 2)
    top = max(0, (resized.height - target_h) // 2)
    return resized.crop((left, top, left + target_w, top + target_h))


def contain_image(image: Image.Image, target: Tuple[int, int]) -> Image.Image:
    """Resize an image to fit inside the target rectangle, keeping its aspect ratio."""

    target_w, target_h = target
    if target_w <= 0 or target_h <= 0:
        raise ValueError("Target size must be positive")

    src_w, src_h = image.size
    if src_w == 0 or src_h == 0:
        raise ValueError("Source image is empty")

    scale = min(target_w / src_w, target_h / src_h)
    new_size = (max(1, int(round(src_w * scale))), max(1, int(round(src_h * scale))))
    return image.resize(new_size, _RESAMPLE)


@lru_cache(maxsize=64)
def load_font(path: Optional[str], size: int) -> ImageFont.ImageFont:
    if path:
        font_path = Path(path).expanduser()
        if font_path.exists():
            return ImageFont.truetype(str(font_path), size=size)
    try:
        return ImageFont.truetype("DejaVuSans.ttf", size=size)
    except OSError:
        return ImageFont.load_default(size=size)


def text_width(font: ImageFont.ImageFont, text: str, kerning: float = 0.0) -> float:
    """Width of ``text`` when drawn glyph by glyph with ``kerning`` extra spacing."""

    if not text:
        return 0.0
    advance = sum(font.getlength(ch) for ch in text)
    return advance + kerning * (len(text) - 1)


def line_height(font: ImageFont.ImageFont) -> int:
    bbox = font.getbbox("Ag")
    return max(1, int(bbox[3]))


def wrap_words(text: str, font: ImageFont.ImageFont, max_width: float, kerning: float = 0.0) -> List[str]:
    """Greedy word wrap; a single word wider than ``max_width`` gets its own line."""

    lines: List[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and text_width(font, candidate, kerning) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def draw_kerned_text(
    draw: ImageDraw.ImageDraw,
    *,
    xy: Tuple[float, float],
    text: str,
    font: ImageFont.ImageFont,
    fill: Tuple[int, int, int, int],
    kerning: float = 0.0,
) -> None:
    x, y = xy
    for ch in text:
        draw.text((x, y), ch, font=font, fill=fill)
        x += font.getlength(ch) + kerning


def max_line_width(lines: Sequence[str], font: ImageFont.ImageFont, kerning: float = 0.0) -> float:
    widths = [text_width(font, line, kerning) for line in lines]
    return max(widths) if widths else 0.0
