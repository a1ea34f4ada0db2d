"""Identifier → resource locator parsing.

The fetcher only ever talks to its transport in terms of ``httpx.URL``.
Anything that cannot become one (spaces, missing scheme, unknown scheme,
no host) is a bad identifier and never reaches the transport.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import httpx

_FORBIDDEN = re.compile(r"[\s\x00-\x1f\x7f]")


def parse_locator(
    identifier: str,
    allowed_schemes: Iterable[str] = ("http", "https"),
) -> httpx.URL | None:
    """Return the parsed locator, or None if *identifier* is not a usable URL.

    >>> parse_locator("not a url") is None
    True
    >>> str(parse_locator("https://example.com/x"))
    'https://example.com/x'
    """
    if not isinstance(identifier, str) or not identifier:
        return None
    if _FORBIDDEN.search(identifier):
        return None

    try:
        url = httpx.URL(identifier)
        # .host decodes IDNA labels and can fail on a malformed "xn--" host
        host = url.host
    except (httpx.InvalidURL, ValueError):
        return None

    schemes = {s.lower() for s in allowed_schemes}
    if url.scheme not in schemes or not host:
        return None
    return url
