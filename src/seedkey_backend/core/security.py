"""Signature verification for challenge proofs, built on Ed25519 primitives."""
from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Protocol

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from seedkey_backend.storage.records import ChallengePayload

PUBKEY_LENGTH_BYTES = 32
SIGNATURE_LENGTH_BYTES = 64

logger = logging.getLogger(__name__)


class SignatureVerifier(Protocol):
    """Proves the holder of ``public_key`` signed ``challenge``."""

    def verify(self, challenge: ChallengePayload, signature: str, public_key: str) -> bool: ...


def canonical_challenge_bytes(challenge: ChallengePayload) -> bytes:
    """Return the exact bytes a client signs for ``challenge``.

    Compact JSON with sorted keys over the camelCase wire fields.
    """
    return json.dumps(challenge.to_wire(), sort_keys=True, separators=(",", ":")).encode("utf-8")


def _decode_base64(data: str) -> bytes:
    """Decode URL-safe or standard base64, accepting omitted padding."""
    padding = "=" * (-len(data) % 4)
    normalized = data.replace("+", "-").replace("/", "_")
    try:
        return base64.urlsafe_b64decode(normalized + padding)
    except (binascii.Error, ValueError) as err:
        raise ValueError(f"Invalid base64 encoding: {err}") from err


def _decode_hex(data: str) -> bytes:
    try:
        return bytes.fromhex(data)
    except ValueError as err:
        raise ValueError(f"Invalid hex encoding: {err}") from err


def decode_fixed_length(encoded: str, length: int, label: str) -> bytes:
    """Decode ``encoded`` as hex or base64, requiring exactly ``length`` bytes.

    Hex is tried first only when the string has the exact hex length, since a
    hex string is also valid base64.
    """
    cleaned = encoded.strip()
    decoders = (_decode_hex, _decode_base64) if len(cleaned) == length * 2 else (
        _decode_base64,
        _decode_hex,
    )
    errors: list[str] = []
    for decoder in decoders:
        try:
            result = decoder(cleaned)
        except ValueError as err:
            errors.append(str(err))
            continue
        if len(result) != length:
            errors.append(f"{label} must be {length} bytes")
            continue
        return result
    joined = "; ".join(errors) if errors else "unknown decoding error"
    raise ValueError(f"Invalid {label} format: {joined}")


def validate_and_decode_pubkey(pubkey_encoded: str) -> bytes:
    """Validate and decode an Ed25519 public key."""
    return decode_fixed_length(pubkey_encoded, PUBKEY_LENGTH_BYTES, "public key")


def canonical_public_key(pubkey_encoded: str) -> str:
    """Return the one stored form of a key: unpadded base64url of its 32 bytes.

    Raises:
        ValueError: If the key is not a 32-byte hex or base64 string.
    """
    raw = validate_and_decode_pubkey(pubkey_encoded)
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


class Ed25519SignatureVerifier:
    """Verifies Ed25519 signatures over the canonical challenge encoding."""

    def verify(self, challenge: ChallengePayload, signature: str, public_key: str) -> bool:
        """Return True if ``signature`` is valid; malformed input yields False."""
        try:
            pubkey_bytes = validate_and_decode_pubkey(public_key)
            signature_bytes = decode_fixed_length(signature, SIGNATURE_LENGTH_BYTES, "signature")
            pubkey = Ed25519PublicKey.from_public_bytes(pubkey_bytes)
            pubkey.verify(signature_bytes, canonical_challenge_bytes(challenge))
        except (InvalidSignature, ValueError) as err:
            logger.debug("Signature verification failed: %s", type(err).__name__)
            return False
        return True
