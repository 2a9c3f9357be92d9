"""
Language-fallback lookup for localized text values.

A localized value is either a plain string or a mapping from language code to
string, e.g. ``{"en": "Hello", "ru": "Привет"}``.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

LocalizedText = Union[str, Mapping[str, str]]

FALLBACK_LANGUAGE = "en"


def normalize_language(code: Optional[str]) -> str:
    """Lowercase, trim and hyphenate a language code (``en_US`` -> ``en-us``)."""
    return (code or "").strip().lower().replace("_", "-")


def base_language(code: str) -> str:
    return code.split("-")[0]


def _lookup(value: Mapping[str, Any], key: str) -> Optional[str]:
    if not key:
        return None
    candidate = value.get(key)
    if isinstance(candidate, str):
        return candidate
    return None


def resolve_localized_text(
    value: Any,
    language: Optional[str] = None,
    default_language: Optional[str] = FALLBACK_LANGUAGE,
) -> str:
    """
    Resolve a localized value to a single display string.

    Lookup order, first hit wins: exact requested language, its base subtag,
    exact default language, its base subtag, ``en``, then the first non-empty
    string in insertion order. Plain strings are returned unchanged; anything
    that is not a mapping resolves to an empty string.
    """
    if isinstance(value, str):
        return value
    if not isinstance(value, Mapping):
        return ""

    requested = normalize_language(language)
    default = normalize_language(default_language)
    candidates = (
        requested,
        base_language(requested),
        default,
        base_language(default),
        FALLBACK_LANGUAGE,
    )
    for key in candidates:
        match = _lookup(value, key)
        if match is not None:
            return match

    for candidate in value.values():
        if isinstance(candidate, str) and candidate.strip():
            return candidate
    return ""


def localized_variants(value: Any) -> list[str]:
    """Every string a localized value can resolve to (used for searching)."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, Mapping):
        return [v for v in value.values() if isinstance(v, str)]
    return []
