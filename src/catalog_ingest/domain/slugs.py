"""URL slugs for bands."""

from __future__ import annotations

import re
import unicodedata
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterable

FALLBACK_SLUG: Final[str] = "band"

_INVALID_CHARS = re.compile(r"[^a-z0-9_-]+")
_DASHES = re.compile(r"-{2,}")


def slugify(name: str) -> str:
    """Return an ASCII, lower-case slug for ``name``.

    Accents are folded away; anything but letters, digits, ``_`` and ``-``
    becomes a single dash.

    Names that reduce to nothing (for example pure CJK or punctuation) yield
    ``"band"`` so every band still gets a usable slug.
    """

    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    slug = _INVALID_CHARS.sub("-", ascii_name.lower())
    slug = _DASHES.sub("-", slug).strip("-")
    return slug or FALLBACK_SLUG


def allocate_slugs(
    bases: Iterable[tuple[str, str]],
    taken: Iterable[str],
) -> dict[str, str]:
    """Assign a unique slug to each ``(key, base)`` pair, in iteration order.

    ``taken`` holds the slugs already stored that could collide (each base and
    its ``<base>-N`` variants). The first claimant of a free base gets it
    unchanged; later claimants get the smallest free ``-N`` with ``N >= 2``.
    """

    used = set(taken)
    assigned: dict[str, str] = {}
    for key, base in bases:
        slug = base
        candidate = 2
        while slug in used:
            slug = f"{base}-{candidate}"
            candidate += 1
        used.add(slug)
        assigned[key] = slug
    return assigned
