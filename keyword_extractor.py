"""IBM Watson Natural Language Understanding keyword client."""
from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

import requests

from logging_utils import get_logger
from pipeline_errors import ExtractionUnavailable

logger = get_logger(__name__)


class WatsonKeywordExtractor:
    """Thin wrapper around the NLU ``/v1/analyze`` endpoint (keywords feature only)."""

    def __init__(self, config: Dict[str, Any] | None = None, *, session: Optional[requests.Session] = None) -> None:
        config = config or {}
        nlu_cfg = config.get("apis", {}).get("watson_nlu", {}) if isinstance(config, dict) else {}
        key_cfg = str(nlu_cfg.get("apikey", "")).strip()
        env_key = os.getenv("WATSON_NLU_APIKEY", "").strip()
        self.apikey = key_cfg or env_key or None
        url_cfg = str(nlu_cfg.get("url", "")).strip()
        env_url = os.getenv("WATSON_NLU_URL", "").strip()
        self.url = (url_cfg or env_url).rstrip("/") or None
        self.version = str(nlu_cfg.get("version", "2021-08-01"))
        self.emotion = bool(nlu_cfg.get("emotion", True))
        self.sentiment = bool(nlu_cfg.get("sentiment", True))
        self.timeout_connect = float(nlu_cfg.get("timeout_connect", 5))
        self.timeout_read = float(nlu_cfg.get("timeout_read", 30))
        self._session = session or requests.Session()

    def extract(self, sentence_text: str, locale: str, limit: int) -> List[str]:
        if not self.apikey or not self.url:
            raise ExtractionUnavailable(
                "Watson NLU credentials missing (apis.watson_nlu.apikey/url or WATSON_NLU_APIKEY/WATSON_NLU_URL)"
            )
        if limit <= 0 or not sentence_text.strip():
            return []

        payload = {
            "text": sentence_text,
            "language": locale,
            "features": {
                "keywords": {
                    "emotion": self.emotion,
                    "sentiment": self.sentiment,
                    "limit": limit,
                },
            },
        }
        try:
            response = self._session.post(
                f"{self.url}/v1/analyze",
                params={"version": self.version},
                json=payload,
                auth=("apikey", self.apikey),
                timeout=(self.timeout_connect, self.timeout_read),
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as exc:
            raise ExtractionUnavailable(f"Watson NLU request failed: {exc}") from exc
        except ValueError as exc:
            raise ExtractionUnavailable(f"Watson NLU response parse failed: {exc}") from exc

        keywords = data.get("keywords") if isinstance(data, dict) else None
        if not isinstance(keywords, list):
            raise ExtractionUnavailable("Watson NLU response has no keywords list")
        return [str(item.get("text")) for item in keywords if isinstance(item, dict) and item.get("text")][:limit]
