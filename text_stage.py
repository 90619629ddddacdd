"""Text stage: fetch the article, split it into sentences and attach keywords."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence

from content_state import Content, Sentence
from keyword_extractor import WatsonKeywordExtractor
from logging_utils import get_logger
from text_sanitizer import limit_sentences, sanitize, split_sentences
from text_source import WikipediaClient

logger = get_logger(__name__)


class TextSource(Protocol):
    def fetch(self, term: str, locale: str) -> str: ...


class KeywordExtractor(Protocol):
    def extract(self, sentence_text: str, locale: str, limit: int) -> List[str]: ...


class TextStage:
    """Fill ``Content`` with source text, sentences and keywords.

    Reads ``search_term``, ``lang`` and ``maximum_sentences``; writes the
    source fields and replaces ``sentences``.
    """

    def __init__(
        self,
        *,
        text_source: TextSource,
        keyword_extractor: KeywordExtractor,
        keyword_limit: int = 2,
        abbreviations: Sequence[str] = (),
    ) -> None:
        self.text_source = text_source
        self.keyword_extractor = keyword_extractor
        self.keyword_limit = keyword_limit
        self.abbreviations = tuple(abbreviations)

    @classmethod
    def from_config(cls, raw: Dict[str, Any]) -> "TextStage":
        text_cfg = raw.get("text", {}) if isinstance(raw, dict) else {}
        return cls(
            text_source=WikipediaClient(raw),
            keyword_extractor=WatsonKeywordExtractor(raw),
            keyword_limit=int(text_cfg.get("keyword_limit", 2)),
            abbreviations=[str(a) for a in text_cfg.get("abbreviations") or []],
        )

    def run(self, content: Content) -> None:
        logger.info("Text stage starting for '%s'", content.search_term)
        self.fetch_content(content)
        self.sanitize_content(content)
        self.break_content_into_sentences(content)
        self.limit_maximum_sentences(content)
        self.fetch_keywords_of_all_sentences(content)
        logger.info("Text stage finished: %d sentences", len(content.sentences))

    def fetch_content(self, content: Content) -> None:
        content.source_content_original = self.text_source.fetch(content.search_term, content.lang)

    def sanitize_content(self, content: Content) -> None:
        content.source_content_sanitized = sanitize(content.source_content_original)

    def break_content_into_sentences(self, content: Content) -> None:
        content.sentences = [
            Sentence(text=text) for text in split_sentences(content.source_content_sanitized, self.abbreviations)
        ]
        logger.debug("Split into %d sentences", len(content.sentences))

    def limit_maximum_sentences(self, content: Content) -> None:
        content.sentences = limit_sentences(content.sentences, content.maximum_sentences)

    def fetch_keywords_of_all_sentences(self, content: Content, limit: Optional[int] = None) -> None:
        limit = self.keyword_limit if limit is None else limit
        logger.info("Fetching keywords for %d sentences", len(content.sentences))
        for sentence in content.sentences:
            logger.info('Sentence: "%s"', sentence.text)
            sentence.keywords = list(self.keyword_extractor.extract(sentence.text, content.lang, limit))[:limit]
            logger.debug("Keywords: %s", ", ".join(sentence.keywords))
