"""Slug normalization and candidate generation."""

import re
import unicodedata
from collections.abc import Iterable, Iterator

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def is_valid_slug(slug: str) -> bool:
    """Check if slug is valid (lowercase alphanumeric + hyphens)."""
    return bool(_SLUG_PATTERN.match(slug))


def slugify(text: str, max_length: int | None = None) -> str:
    """
    Normalize text to a URL-safe token.

    NFKD-normalizes, drops combining marks, lowercases, collapses every run of
    non-alphanumerics to a single hyphen and trims hyphens at both ends. When
    ``max_length`` is given the result is cut back to the last hyphen that fits.
    """
    decomposed = unicodedata.normalize("NFKD", text or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    slug = _NON_ALNUM.sub("-", stripped.lower()).strip("-")

    if max_length and len(slug) > max_length:
        cut = slug[:max_length]
        if slug[max_length] != "-" and "-" in cut:
            cut = cut.rsplit("-", 1)[0]
        slug = cut.strip("-")

    return slug


def base_slug(title: str, fallback: str, max_length: int | None = None) -> str:
    """Slug for a title, substituting ``fallback`` when nothing survives normalization."""
    return slugify(title, max_length) or fallback


def candidates(base: str) -> Iterator[str]:
    """Yield base, base-1, base-2, ... without end."""
    yield base
    n = 1
    while True:
        yield f"{base}-{n}"
        n += 1


def first_free(base: str, taken: Iterable[str]) -> str:
    """First candidate for ``base`` that is not in ``taken``."""
    taken_set = set(taken)
    return next(c for c in candidates(base) if c not in taken_set)
