from __future__ import annotations

import hashlib
import re
import secrets
from uuid import uuid4


API_KEY_PREFIX = "soc_"
# soc_<key id>_<urlsafe secret>; the secret itself may contain underscores.
_KEY_RE = re.compile(r"^soc_([0-9A-Za-z]+)_([A-Za-z0-9_-]{20,})$")


def hash_api_key(raw_key: str) -> str:
    # Only the SHA-256 digest is stored; the raw key is shown once at creation.
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def generate_api_key(*, key_id: str | None = None) -> tuple[str, str, str, str]:
    """Mint a console API key.

    Returns ``(key_id, raw_key, key_prefix, key_hash)``. The key id is embedded
    in the raw key so an operator holding a leaked key can revoke it without
    a database search.
    """
    resolved_id = key_id or uuid4().hex
    secret = secrets.token_urlsafe(32)
    raw_key = f"{API_KEY_PREFIX}{resolved_id}_{secret}"
    key_prefix = raw_key[:12]
    return resolved_id, raw_key, key_prefix, hash_api_key(raw_key)


def parse_key_id(raw_key: str) -> str | None:
    # Malformed tokens are rejected before any lookup.
    match = _KEY_RE.match(raw_key.strip())
    return match.group(1) if match else None
