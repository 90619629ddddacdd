"""Text cleanup and sentence splitting for fetched article content."""
from __future__ import annotations

import re
from typing import AbstractSet, Iterable, List, Optional, Sequence, TypeVar

T = TypeVar("T")

# 最内側の括弧のみ対象。なくなるまで繰り返すのでネストの深さは問わない
_PARENTHETICAL_RE = re.compile(r"\s*\([^()]*\)")
_SPACE_COMPRESS_RE = re.compile(r"[ \t]{2,}")
_SENTENCE_END_RE = re.compile(r"[.!?…]+[\"'”’)\]]*$")

# Titles, addresses, companies and reference markers (pt/en)
_ABBREVIATIONS = frozenset(
    {
        "a.c", "d.c", "e.g", "i.e", "n.º", "nº", "s.a", "s/a",
        "al", "alm", "ap", "apto", "aprox", "approx", "art", "arts", "av", "brig",
        "ca", "cap", "cel", "cf", "cia", "cit", "co", "col", "corp", "dept", "dr", "dra",
        "drs", "ed", "eng", "engª", "est", "etc", "ex", "exma", "exmo", "fig", "gen",
        "gov", "hon", "ilma", "ilmo", "inc", "jr", "lt", "ltd", "ltda", "maj", "mr",
        "mrs", "ms", "no", "num", "núm", "op", "p", "pág", "págs", "pe", "pp", "pres",
        "prof", "profa", "profª", "rev", "séc", "sécs", "sgt", "sr", "sra", "sras",
        "srs", "srta", "st", "sta", "sto", "tel", "ten", "univ", "vol", "vols", "vs",
    }
)

# Month abbreviations clash with ordinary words ("mar", "set", "out"), so they
# only suppress a break when a number follows ("5 de set. 1990").
_MONTH_ABBREVIATIONS = frozenset(
    {
        "jan", "fev", "mar", "abr", "mai", "jun", "jul", "ago", "set", "out", "nov", "dez",
        "feb", "apr", "may", "aug", "sep", "sept", "oct", "dec",
    }
)


def remove_blank_lines_and_markup(text: str) -> str:
    """Drop empty lines and wiki heading lines (``== Title ==``), joining the rest with spaces."""
    kept = [line for line in text.split("\n") if line.strip() and not line.strip().startswith("=")]
    return " ".join(kept)


def remove_dates_in_parentheses(text: str) -> str:
    previous = None
    while previous != text:
        previous = text
        text = _PARENTHETICAL_RE.sub("", text)
    return _SPACE_COMPRESS_RE.sub(" ", text).strip()


def sanitize(text: str) -> str:
    """Filter markup lines once, then strip parentheticals from the joined text.

    Removing a parenthetical can leave ``=`` at the very start of the joined
    text; it is trimmed rather than dropping the line, so a second run sees
    nothing left to remove.
    """
    cleaned = remove_dates_in_parentheses(remove_blank_lines_and_markup(text))
    return cleaned.lstrip("= \t")


def split_sentences(text: str, abbreviations: Optional[Iterable[str]] = None) -> List[str]:
    """Split on terminal punctuation followed by a capitalised word, skipping abbreviations.

    ``abbreviations`` adds entries (without the trailing dot) to the built-in list.
    """
    known = _ABBREVIATIONS
    if abbreviations:
        known = _ABBREVIATIONS | {a.strip().rstrip(".").lower() for a in abbreviations if a.strip()}
    tokens = text.split()
    sentences: List[str] = []
    current: List[str] = []
    for position, token in enumerate(tokens):
        current.append(token)
        if not _SENTENCE_END_RE.search(token):
            continue
        following = tokens[position + 1] if position + 1 < len(tokens) else None
        if following is not None:
            if token.endswith(".") and _is_abbreviation(token, following, known):
                continue
            if not _starts_sentence(following):
                continue
        sentences.append(" ".join(current))
        current = []
    if current:
        sentences.append(" ".join(current))
    return sentences


def limit_sentences(sentences: Sequence[T], maximum: int) -> List[T]:
    if maximum < 0:
        raise ValueError(f"maximum must be >= 0, got {maximum}")
    return list(sentences[:maximum])


def _is_abbreviation(token: str, following: str, known: AbstractSet[str]) -> bool:
    stem = token.rstrip(".").lstrip("(\"'“‘").lower()
    if len(stem) == 1 and stem.isalpha():
        return True
    if stem in known:
        return True
    return stem in _MONTH_ABBREVIATIONS and following[:1].isdigit()


def _starts_sentence(token: str) -> bool:
    first = next((ch for ch in token if ch.isalnum()), "")
    return first.isupper() or first.isdigit()
