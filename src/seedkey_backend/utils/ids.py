# src/seedkey_backend/utils/ids.py
"""Identifier helpers."""

from __future__ import annotations

import secrets

ID_PREFIX_USER = "user"
ID_PREFIX_KEY = "key"
ID_PREFIX_SESSION = "ses"
ID_PREFIX_CHALLENGE = "chl"


def generate_id(prefix: str) -> str:
    """Return a collision-resistant opaque identifier tagged with ``prefix``.

    The prefix only aids debugging (``ses_...`` vs ``user_...``); callers must not
    parse it.
    """
    return f"{prefix}_{secrets.token_urlsafe(18)}"


def generate_nonce() -> str:
    """Return a hex-encoded 32-byte challenge nonce."""
    return secrets.token_hex(32)
