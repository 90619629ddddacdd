"""Wikipedia article fetcher used by the text stage."""
from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from logging_utils import get_logger
from pipeline_errors import SourceUnavailable

logger = get_logger(__name__)


_DEFAULT_HEADERS = {
    "User-Agent": "topic-video-pipeline/0.1 (https://www.mediawiki.org/wiki/API:Etiquette)",
}


class WikipediaClient:

    API_URL_TEMPLATE = "https://{lang}.wikipedia.org/w/api.php"

    def __init__(self, config: Dict[str, Any] | None = None, *, session: Optional[requests.Session] = None) -> None:
        config = config or {}
        wiki_cfg = config.get("apis", {}).get("wikipedia", {}) if isinstance(config, dict) else {}
        self.api_url_template = str(wiki_cfg.get("api_url", self.API_URL_TEMPLATE))
        # requests accepts a (connect, read) tuple.
        self.timeout_connect = float(wiki_cfg.get("timeout_connect", 5))
        self.timeout_read = float(wiki_cfg.get("timeout_read", 15))
        self.search_fallback = bool(wiki_cfg.get("search_fallback", True))
        self._session = session or requests.Session()
        self._session.headers.update(_DEFAULT_HEADERS)

    def fetch(self, term: str, locale: str) -> str:
        term = term.strip()
        if not term:
            raise SourceUnavailable("Search term is empty")

        logger.info("Fetching content from Wikipedia: %s (%s)", term, locale)
        extract = self._fetch_extract(term, locale)
        # 記事名と一致しない場合は検索結果の先頭で再取得
        if extract is None and self.search_fallback:
            title = self._search_title(term, locale)
            if title and title != term:
                logger.info("Wikipedia search resolved '%s' to '%s'", term, title)
                extract = self._fetch_extract(title, locale)
        if not extract:
            raise SourceUnavailable(f"No Wikipedia article found for '{term}' ({locale})")
        logger.info("Fetching done! (%d chars)", len(extract))
        return extract

    def _fetch_extract(self, title: str, locale: str) -> Optional[str]:
        params = {
            "action": "query",
            "prop": "extracts",
            "explaintext": 1,
            "redirects": 1,
            "titles": title,
            "format": "json",
            "formatversion": 2,
        }
        data = self._get(locale, params)
        pages = data.get("query", {}).get("pages") or []
        for page in pages:
            if page.get("missing") or page.get("invalid"):
                continue
            extract = page.get("extract")
            if extract:
                return str(extract)
        return None

    def _search_title(self, term: str, locale: str) -> Optional[str]:
        params = {
            "action": "query",
            "list": "search",
            "srsearch": term,
            "srlimit": 1,
            "format": "json",
            "formatversion": 2,
        }
        data = self._get(locale, params)
        hits = data.get("query", {}).get("search") or []
        if not hits:
            return None
        return hits[0].get("title")

    def _get(self, locale: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = self.api_url_template.format(lang=locale)
        try:
            response = self._session.get(
                url,
                params=params,
                timeout=(self.timeout_connect, self.timeout_read),
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as exc:
            raise SourceUnavailable(f"Wikipedia request failed: {exc}") from exc
        except ValueError as exc:
            raise SourceUnavailable(f"Wikipedia response parse failed: {exc}") from exc
        if not isinstance(data, dict):
            raise SourceUnavailable("Wikipedia response is not a JSON object")
        if "error" in data:
            raise SourceUnavailable(f"Wikipedia API error: {data['error']}")
        return data
