"""
Query parameter normalization and stable cache keys.
"""

import json
import re
import unicodedata
from typing import Any, Mapping

from loguru import logger

# Any non-ASCII character: CJK, kana, Hangul, Cyrillic, Arabic,
# accented Latin and bare combining marks all land here.
_NON_ASCII = re.compile(r"[^\x00-\x7f]")
_CJK = re.compile(r"[\u4e00-\u9fff]")


def contains_non_ascii(text: str) -> bool:
    """True when text needs Unicode normalization before transmission."""
    return bool(_NON_ASCII.search(text))


def contains_cjk(text: str) -> bool:
    """True when text contains CJK unified ideographs."""
    return bool(_CJK.search(text))


def to_text(value: Any) -> str:
    """Canonical text form for a query parameter value."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip()


def normalize_params(
    params: Mapping[str, Any] | None, debug: bool = False
) -> dict[str, str]:
    """
    Normalize a search parameter mapping.

    Drops None and empty values, trims everything to text and NFC-composes
    non-ASCII text so that combining-mark and precomposed input match.
    """
    normalized: dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None or value == "":
            continue

        text = to_text(value)
        if not text:
            continue

        if contains_non_ascii(text):
            text = unicodedata.normalize("NFC", text)
            if debug and contains_cjk(text):
                logger.debug(f"Chinese search value for '{key}': {text}")

        normalized[key] = text
    return normalized


def stable_serialize(value: Any) -> str:
    """
    Serialize a value so that equal mappings give equal strings.

    Mapping keys are sorted, sequences keep their order, primitives use
    their JSON text.
    """
    if value is None:
        return "null"
    if isinstance(value, Mapping):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        body = ",".join(
            f"{json.dumps(str(k), ensure_ascii=False)}:{stable_serialize(v)}"
            for k, v in items
        )
        return "{" + body + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(stable_serialize(v) for v in value) + "]"
    try:
        return json.dumps(value, ensure_ascii=False)
    except TypeError:
        return json.dumps(str(value), ensure_ascii=False)


def cache_key(params: Mapping[str, Any] | None) -> str:
    """Cache key for an already-normalized parameter mapping."""
    return stable_serialize(dict(params or {}))
