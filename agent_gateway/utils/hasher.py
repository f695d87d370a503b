"""
Request fingerprint generation utilities.

Sandi Metz Principles:
- Single Responsibility: Hash generation
- Small functions: Each does one thing
- Pure functions: No side effects
"""

import hashlib
import json
import re
import unicodedata
from typing import Any, Mapping, Optional

_WHITESPACE = re.compile(r"\s+")

FINGERPRINT_PREFIX = "gateway:cache:"


def normalize_query(query: str) -> str:
    """
    Normalize query text for comparison.

    Args:
        query: Query text

    Returns:
        Normalized query (NFKC, lowercase, trimmed, single-spaced)
    """
    text = unicodedata.normalize("NFKC", query)
    return _WHITESPACE.sub(" ", text.strip()).lower()


def normalize_params(params: Optional[Mapping[str, Any]]) -> dict:
    """
    Normalize a parameter set.

    Keys are trimmed and lowercased, string values trimmed and
    ``None`` values dropped. Nested mappings are normalized recursively;
    list order is kept.

    Args:
        params: Raw parameters

    Returns:
        Normalized parameter dictionary
    """
    if not params:
        return {}
    return {
        str(key).strip().lower(): _normalize_value(value)
        for key, value in params.items()
        if value is not None
    }


def _normalize_value(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, Mapping):
        return normalize_params(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_value(item) for item in value]
    return value


def generate_fingerprint(
    variant: str,
    agent: str,
    query: str,
    params: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Generate the fingerprint identifying a request.

    Args:
        variant: Backend variant name
        agent: Agent persona
        query: Query text
        params: Request parameters

    Returns:
        Hex SHA-256 fingerprint
    """
    canonical = json.dumps(
        {
            "variant": variant,
            "agent": agent,
            "query": normalize_query(query),
            "params": normalize_params(params),
        },
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def generate_cache_key(fingerprint: str) -> str:
    """
    Generate storage key for a fingerprint.

    Args:
        fingerprint: Request fingerprint

    Returns:
        Storage key (gateway:cache:<fingerprint>)
    """
    return f"{FINGERPRINT_PREFIX}{fingerprint}"
