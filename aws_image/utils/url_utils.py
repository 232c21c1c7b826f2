"""URL, cache-key, and GraphQL query helpers.

Everything here is pure and synchronous so it can be called from model
validators as well as from the async pipeline.

Cache keys are an MD5 of the *bucket key* -- the object path with scheme,
host, query string and signature parameters stripped -- so every presigned
variant of one object lands in the same cache slot::

    parse_cache_key("https://b.s3.amazonaws.com/a/b.jpg?X-Amz-Signature=1")
    == parse_cache_key("https://b.s3.amazonaws.com/a/b.jpg?X-Amz-Signature=2")
    == parse_cache_key("a/b.jpg")
"""

from __future__ import annotations

import hashlib
import re
from datetime import datetime, timezone
from urllib.parse import parse_qs, unquote, urlsplit

_EXPIRY_PARAMS = ("X-Amz-Expires", "Expires")

# Values below this are Unix seconds, at or above it milliseconds.
_SECONDS_MS_THRESHOLD = 1_000_000_000_000

_MIN_TIMESTAMP_MS = 0
_MAX_TIMESTAMP_MS = int(datetime(3000, 1, 1, tzinfo=timezone.utc).timestamp() * 1000)

_COMMENT_RE = re.compile(r"#.*")
_WHITESPACE_RE = re.compile(r"\s+")
_ROOT_FIELD_RE = re.compile(r"(mutation|query)\s+\w*\s*\([^)]*\)\s*\{\s*(\w+)")
_FIRST_FIELD_RE = re.compile(r"\{\s*(\w+)")
_OPERATION_NAME_RE = re.compile(r"(mutation|query)\s+(\w+)")
_VALID_QUERY_RE = re.compile(r"^(query|mutation)(\s+\w+)?(\s*\([^)]*\))?\s*\{")


def hash_key(key: str) -> str:
    """Return the MD5 hex digest of *key* (used for storage identity, not security)."""
    return hashlib.md5(key.encode("utf-8")).hexdigest()  # noqa: S324


def is_valid_url(url: str) -> bool:
    """Return ``True`` if *url* is an absolute http(s) URL with a host."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def parse_bucket_key(url: str) -> str:
    """Return the object path of *url* without query or signature parameters.

    A bare bucket key (``"folder/photo.jpg"``) is returned unchanged apart
    from percent-decoding and collapsing empty segments.

    Raises
    ------
    ValueError
        If the URL has no path segments to use as a key.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    segments = [unquote(segment) for segment in parts.path.split("/") if segment]
    if not segments:
        raise ValueError(f"Invalid URL: {url}. Unable to parse bucket key.")
    return "/".join(segments)


def parse_cache_key(source: str) -> str:
    """Derive the stable cache key for a bucket key or presigned URL."""
    if source:
        try:
            return hash_key(parse_bucket_key(source))
        except ValueError:
            pass
    return hash_key(source)


def is_unix_timestamp(value: int) -> bool:
    """Return ``True`` if *value* is a plausible Unix timestamp (s or ms)."""
    if value < _SECONDS_MS_THRESHOLD:
        value *= 1000
    return _MIN_TIMESTAMP_MS <= value <= _MAX_TIMESTAMP_MS


def get_expiry(url: str) -> datetime | None:
    """Return the absolute expiry encoded in *url*'s query string, if any.

    Returns ``None`` when the URL carries no expiry parameter or the value
    cannot be interpreted.
    """
    try:
        query = parse_qs(urlsplit(url).query, keep_blank_values=True)
    except ValueError:
        return None

    raw: str | None = None
    for name in _EXPIRY_PARAMS:
        values = query.get(name)
        if values:
            raw = values[0].strip()
            break
    if raw is None:
        return None

    try:
        numeric = int(raw)
    except ValueError:
        numeric = None

    if numeric is not None and is_unix_timestamp(numeric):
        millis = numeric * 1000 if numeric < _SECONDS_MS_THRESHOLD else numeric
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)

    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_url_expired(url: str, now: datetime | None = None) -> bool:
    """Return ``True`` if *url* carries an expiry that lies in the past.

    URLs without ``X-Amz-Expires``/``Expires`` and URLs whose expiry value
    is malformed are treated as not expired.
    """
    expires_at = get_expiry(url)
    if expires_at is None:
        return False
    current = now or datetime.now(tz=timezone.utc)
    return current > expires_at


# ---------------------------------------------------------------------------
# GraphQL helpers
# ---------------------------------------------------------------------------

def _clean_query(query: str) -> str:
    """Strip ``#`` comments and collapse whitespace."""
    return _WHITESPACE_RE.sub(" ", _COMMENT_RE.sub("", query)).strip()


def is_valid_query(query: str) -> bool:
    """Return ``True`` if *query* looks like a ``query``/``mutation`` document."""
    return bool(_VALID_QUERY_RE.match(_clean_query(query)))


def parse_operation_name(query: str) -> str | None:
    """Return the operation name (``mutation GetUrl(...)`` -> ``GetUrl``)."""
    match = _OPERATION_NAME_RE.search(_clean_query(query))
    return match.group(2) if match else None


def parse_query_name(query: str) -> str | None:
    """Return the root field selected by *query*.

    ``mutation GetUrl($input: X!) { getPresignedUrl(input: $input) { url } }``
    yields ``"getPresignedUrl"``, the key under ``data`` in the response.
    """
    cleaned = _clean_query(query)
    match = _ROOT_FIELD_RE.search(cleaned)
    if match:
        return match.group(2)
    fallback = _FIRST_FIELD_RE.search(cleaned)
    return fallback.group(1) if fallback else None
