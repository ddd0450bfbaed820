"""Pull a JSON object out of free-text model output.

Models wrap JSON in prose, in fenced blocks, or return it bare. Each
extractor below handles one of those layouts and returns a candidate string
(or None); ``extract_json`` tries them in order and keeps the first candidate
that parses into an object.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from devlab.core.errors import ParseError

Extractor = Callable[[str], Optional[str]]

_JSON_FENCE = re.compile(r"```json\s*(.*?)\s*```", re.IGNORECASE | re.DOTALL)
_ANY_FENCE = re.compile(r"```\s*(.*?)\s*```", re.DOTALL)


def from_json_fence(text: str) -> str | None:
    match = _JSON_FENCE.search(text)
    return match.group(1) if match else None


def from_plain_fence(text: str) -> str | None:
    match = _ANY_FENCE.search(text)
    if not match:
        return None
    body = match.group(1)
    # A fence opened as ```python still starts with its label line.
    first, _, rest = body.partition("\n")
    if rest and first.strip().isalpha():
        return rest
    return body


def from_brace_span(text: str) -> str | None:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def from_whole_text(text: str) -> str | None:
    stripped = text.strip()
    return stripped or None


DEFAULT_EXTRACTORS: Sequence[Extractor] = (
    from_json_fence,
    from_plain_fence,
    from_brace_span,
    from_whole_text,
)


def normalize_lm_output(raw: Any) -> str:
    """Collapse DSPy LM outputs (often a list of completions) into one string."""
    if isinstance(raw, list):
        return "\n".join(str(part) for part in raw)
    if raw is None:
        return ""
    return str(raw)


def extract_json(text: str, extractors: Iterable[Extractor] = DEFAULT_EXTRACTORS) -> Dict[str, Any]:
    """Return the first JSON object any extractor can parse.

    Raises ``ParseError`` when none of the candidates decode into a mapping.
    """

    for extractor in extractors:
        candidate = extractor(text)
        if candidate is None:
            continue
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    preview = text.strip()[:120]
    raise ParseError(f"Could not extract valid JSON from model response: {preview!r}")


def require_list(payload: Dict[str, Any], key: str) -> List[Any]:
    """Return ``payload[key]`` when it is a list, else raise ``ParseError``."""
    value = payload.get(key)
    if not isinstance(value, list):
        raise ParseError(f"Malformed model response: expected a list under '{key}'")
    return value


__all__ = [
    "DEFAULT_EXTRACTORS",
    "Extractor",
    "extract_json",
    "from_brace_span",
    "from_json_fence",
    "from_plain_fence",
    "from_whole_text",
    "normalize_lm_output",
    "require_list",
]
