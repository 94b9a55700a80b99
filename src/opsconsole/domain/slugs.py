"""Display name to URL slug mapping.

Slugs are a presentation artifact for the URL-facing layer. They are lossy
(no inverse exists) and two units whose names differ only in case or
whitespace produce the same slug. Carry the real id for identity.
"""

from __future__ import annotations

import re

DEFAULT_SLUG = "company"

_WHITESPACE_RUN = re.compile(r"\s+")


def to_slug(name: str | None) -> str:
    """Lowercase *name* and replace every whitespace run with ``-``.

    Empty or missing names map to :data:`DEFAULT_SLUG`. Applying the
    function to an existing slug returns it unchanged.

    Examples:
        >>> to_slug("North West Services")
        'north-west-services'
        >>> to_slug("north-west-services")
        'north-west-services'
        >>> to_slug("")
        'company'
    """
    if not name:
        return DEFAULT_SLUG
    return _WHITESPACE_RUN.sub("-", name.lower())
