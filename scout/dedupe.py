"""
Deduplication helpers: canonical URLs and item keys.
"""
from __future__ import annotations

import hashlib
from typing import Optional, Sequence
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

KEY_DIGEST_LENGTH = 32
TRACKING_PARAMS = {"fbclid", "gclid", "ref", "ref_src"}


def make_digest(parts: Sequence[str]) -> str:
    joined = "|".join(part or "" for part in parts)
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()


def canonical_url(url: str) -> str:
    raw = (url or "").strip()
    if not raw:
        return ""
    parts = urlsplit(raw)
    scheme = parts.scheme.lower() or "http"
    netloc = parts.netloc.lower()
    if ":" in netloc:
        host, port = netloc.rsplit(":", 1)
        if (scheme == "http" and port == "80") or (scheme == "https" and port == "443"):
            netloc = host
    query = [
        (k, v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if not k.lower().startswith("utm_") and k.lower() not in TRACKING_PARAMS
    ]
    query.sort()
    return urlunsplit((scheme, netloc, parts.path.rstrip("/"), urlencode(query, doseq=True), ""))


def item_key(prefix: str, external_id: Optional[str], url: str) -> str:
    """
    Deterministic dedup key for an item.

    Sources with a stable upstream id get ``{prefix}_{id}``; everything else is
    keyed by a fixed-length digest of the canonical URL.
    """
    if external_id:
        return f"{prefix}_{external_id}"
    return f"{prefix}-{make_digest([canonical_url(url)])[:KEY_DIGEST_LENGTH]}"
