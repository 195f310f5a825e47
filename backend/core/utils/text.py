"""
Slug and display-text helpers.
"""

import re
from collections.abc import Collection

# Thai vowel and tone marks are category Mn, which \w does not match
_NON_SLUG_CHARS = re.compile(r"[^\w\s\u0E00-\u0E7F-]+")
_SEPARATORS = re.compile(r"[\s_-]+")
_EDGE_HYPHENS = re.compile(r"^-+|-+$")
_VALID_SLUG = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def slugify(text: str | None) -> str:
    """
    Convert text to a URL-friendly slug.

    Unicode word characters (Thai included) are kept; punctuation is dropped
    and runs of whitespace, underscores and hyphens collapse to one hyphen.
    """
    if not text or not text.strip():
        return ""
    slug = text.lower().strip()
    slug = _NON_SLUG_CHARS.sub("", slug)
    slug = _SEPARATORS.sub("-", slug)
    return _EDGE_HYPHENS.sub("", slug)


def is_valid_slug(slug: str | None) -> bool:
    if not slug or not slug.strip():
        return False
    return _VALID_SLUG.match(slug) is not None


def generate_unique_slug(text: str, existing: Collection[str]) -> str:
    """Slugify ``text`` and append ``-2``, ``-3``... until it is not in ``existing``."""
    base = slugify(text) or "item"
    if base not in existing:
        return base
    counter = 2
    while f"{base}-{counter}" in existing:
        counter += 1
    return f"{base}-{counter}"


def truncate_text(text: str, max_length: int, suffix: str = "...") -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + suffix


def get_initials(name: str, max_initials: int = 2) -> str:
    return "".join(word[0] for word in name.split() if word).upper()[:max_initials]
