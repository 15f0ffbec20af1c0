"""URL canonicalization.

Normalizes a URL before it is sent: prefers the page-declared canonical
form when one is supplied, removes tracking query parameters and sorts
the rest so the same page always produces the same string (and hence
the same dedupe key).
"""

from __future__ import annotations

from collections.abc import Iterable
from functools import lru_cache
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from pyuca import Collator

WILDCARD = "*"

# Schemes that require a host; parsing one without a host is a failure
_HOST_SCHEMES = frozenset({"http", "https", "ws", "wss", "ftp"})
_DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443, "ftp": 21}

# Characters left as-is in paths and fragments; the rest is percent-encoded
_PATH_SAFE = "/%:@!$&'()*+,;=[]|^"
_FRAGMENT_SAFE = _PATH_SAFE + "?#{}\\"


def matches_strip_pattern(key: str, patterns: Iterable[str]) -> bool:
    """Check a query key against strip patterns.

    A pattern ending in ``*`` matches by prefix; anything else must match
    exactly. Matching is case-sensitive.

    Examples:
        matches_strip_pattern("utm_source", ["utm_*"]) -> True
        matches_strip_pattern("UTM_source", ["utm_*"]) -> False
        matches_strip_pattern("fbclid", ["fbclid"]) -> True
    """
    for pattern in patterns:
        if pattern.endswith(WILDCARD):
            if key.startswith(pattern[: -len(WILDCARD)]):
                return True
        elif key == pattern:
            return True
    return False


@lru_cache(maxsize=1)
def _collator() -> Collator:
    # Unicode Collation Algorithm: accents and case only break ties,
    # lowercase sorts before uppercase
    return Collator()


def _collation_key(key: str) -> tuple[int, ...]:
    return _collator().sort_key(key)


def _normalize_netloc(scheme: str, netloc: str, port: int | None) -> str:
    userinfo, sep, hostport = netloc.rpartition("@")
    hostport = hostport.lower()
    host, colon, _ = hostport.rpartition(":")
    # Drop a default port or an empty one ("host:")
    if colon and not hostport.endswith("]") and (port is None or _DEFAULT_PORTS.get(scheme) == port):
        hostport = host
    return f"{userinfo}{sep}{hostport}"


def canonicalize(
    raw_url: str,
    strip_patterns: Iterable[str] = (),
    canonical_override: str | None = None,
) -> str:
    """Canonicalize a URL.

    Args:
        raw_url: URL as captured from the trigger.
        strip_patterns: Query parameter patterns to remove.
        canonical_override: Page-declared canonical URL; parsed instead of
            ``raw_url`` when non-empty.

    Returns:
        The rebuilt absolute URL, or ``raw_url`` unchanged if the chosen
        URL cannot be parsed.
    """
    chosen = canonical_override or raw_url
    patterns = list(strip_patterns)

    try:
        parts = urlsplit(chosen.strip())
        port = parts.port
    except (AttributeError, ValueError):
        return raw_url

    scheme = parts.scheme.lower()
    if not scheme or (scheme in _HOST_SCHEMES and not parts.hostname):
        return raw_url

    netloc = _normalize_netloc(scheme, parts.netloc, port)
    path = parts.path
    if scheme in _HOST_SCHEMES:
        path = quote(path.replace("\\", "/"), safe=_PATH_SAFE) or "/"
    fragment = quote(parts.fragment, safe=_FRAGMENT_SAFE)

    params = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if not matches_strip_pattern(key, patterns)
    ]
    params.sort(key=lambda kv: _collation_key(kv[0]))
    query = urlencode(params)

    return urlunsplit((scheme, netloc, path, query, fragment))
