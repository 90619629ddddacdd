"""Serialize content into the script consumed by the external renderer."""
from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:  # pragma: no cover - typing only
    from content_state import Content


class RenderScriptBuilder:
    """Build the ``var content = {...};`` script read by the render template.

    Output depends only on the content passed in: keys are sorted and the
    indentation is fixed, so rebuilding unchanged content is byte-identical.
    """

    variable_name = "content"

    def build(self, content: "Content") -> str:
        payload = self.to_payload(content)
        body = json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=2)
        return f"var {self.variable_name} = {body};\n"

    @staticmethod
    def to_payload(content: "Content") -> Dict[str, Any]:
        return {
            "searchTerm": content.search_term,
            "maximumSentences": content.maximum_sentences,
            "lang": content.lang,
            "sentences": [
                {
                    "index": index,
                    "text": sentence.text,
                    "keywords": list(sentence.keywords),
                    "images": list(sentence.images),
                }
                for index, sentence in enumerate(content.sentences)
            ],
        }
