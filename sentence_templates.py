"""Static per-index caption layouts for sentence overlay images."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Sequence, Tuple

from pipeline_errors import TemplateNotFound


class Anchor(str, Enum):
    CENTER = "center"
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"
    NORTHWEST = "northwest"
    NORTHEAST = "northeast"
    SOUTHWEST = "southwest"
    SOUTHEAST = "southeast"


@dataclass(frozen=True)
class TemplateEntry:
    width: int
    height: int
    anchor: Anchor = Anchor.CENTER

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @classmethod
    def parse(cls, data: Any) -> "TemplateEntry":
        """Accept ``{"size": "1920x400", "gravity": "center"}`` or width/height/anchor keys."""
        if not isinstance(data, Mapping):
            raise ValueError(f"Template entry must be a mapping: {data!r}")
        size = data.get("size")
        if size is not None:
            try:
                width_text, height_text = str(size).lower().split("x", 1)
                width, height = int(width_text), int(height_text)
            except ValueError as exc:
                raise ValueError(f"Invalid template size: {size!r}") from exc
        else:
            width = int(data.get("width", 0))
            height = int(data.get("height", 0))
        anchor_value = str(data.get("anchor") or data.get("gravity") or "center").strip().lower()
        try:
            anchor = Anchor(anchor_value)
        except ValueError as exc:
            raise ValueError(f"Unknown template anchor: {anchor_value!r}") from exc
        return cls(width=width, height=height, anchor=anchor)


_BANNER = TemplateEntry(1920, 400, Anchor.CENTER)
_FULL = TemplateEntry(1920, 1080, Anchor.CENTER)
_SIDE = TemplateEntry(800, 1080, Anchor.WEST)

DEFAULT_TEMPLATES: Tuple[TemplateEntry, ...] = (
    _BANNER,
    _FULL,
    _SIDE,
    _BANNER,
    _FULL,
    _SIDE,
    _BANNER,
)


class SentenceTemplateTable:
    """Fixed mapping from sentence index to caption layout.

    Indices outside the table raise ``TemplateNotFound``; there is no
    wrap-around and no default entry.
    """

    def __init__(self, entries: Mapping[int, TemplateEntry] | Sequence[TemplateEntry] = DEFAULT_TEMPLATES) -> None:
        if isinstance(entries, Mapping):
            mapping: Dict[int, TemplateEntry] = {int(k): v for k, v in entries.items()}
        else:
            mapping = {index: entry for index, entry in enumerate(entries)}
        _validate(mapping)
        self._entries = mapping

    @classmethod
    def from_config(cls, raw: Dict[str, Any]) -> "SentenceTemplateTable":
        templates = raw.get("templates") if isinstance(raw, dict) else None
        if not templates:
            return cls()
        if isinstance(templates, Mapping):
            return cls({int(k): TemplateEntry.parse(v) for k, v in templates.items()})
        return cls([TemplateEntry.parse(item) for item in templates])

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, index: int) -> TemplateEntry:
        entry = self._entries.get(index)
        if entry is None:
            raise TemplateNotFound(index, len(self._entries))
        return entry

    def ensure_covers(self, count: int) -> None:
        """Fail before any rendering when ``count`` sentences exceed the table."""
        if count > len(self._entries):
            raise TemplateNotFound(len(self._entries), len(self._entries))


def _validate(mapping: Dict[int, TemplateEntry]) -> None:
    if not mapping:
        raise ValueError("Sentence template table must define at least one entry")
    expected = set(range(len(mapping)))
    if set(mapping) != expected:
        missing = sorted(expected - set(mapping))
        extra = sorted(set(mapping) - expected)
        raise ValueError(f"Sentence template indices must be contiguous from 0 (missing={missing}, unexpected={extra})")
    for index, entry in mapping.items():
        if not isinstance(entry, TemplateEntry):
            raise ValueError(f"Template {index} is not a TemplateEntry: {entry!r}")
        if entry.width <= 0 or entry.height <= 0:
            raise ValueError(f"Template {index} has non-positive size {entry.width}x{entry.height}")
