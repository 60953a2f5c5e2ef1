"""
PKCE (RFC 7636) verifier/challenge generation and OAuth state values.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from typing import Callable, NamedTuple

VERIFIER_BYTES = 64
STATE_BYTES = 32
MIN_ENTROPY_BYTES = 32

ByteSource = Callable[[int], bytes]


class PKCEPair(NamedTuple):
    verifier: str
    challenge: str


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def derive_challenge(verifier: str) -> str:
    """Return the S256 challenge for ``verifier``."""
    return _b64url(hashlib.sha256(verifier.encode("ascii")).digest())


def generate_pkce_pair(
    num_bytes: int = VERIFIER_BYTES, *, token_bytes: ByteSource | None = None
) -> PKCEPair:
    """
    Generate a verifier and its S256 challenge.

    ``token_bytes`` replaces the CSPRNG and exists for deterministic tests.
    """
    if num_bytes < MIN_ENTROPY_BYTES:
        raise ValueError(f"PKCE verifier needs at least {MIN_ENTROPY_BYTES} bytes of entropy")
    source = token_bytes or secrets.token_bytes
    verifier = _b64url(source(num_bytes))
    return PKCEPair(verifier=verifier, challenge=derive_challenge(verifier))


def generate_state(num_bytes: int = STATE_BYTES, *, token_bytes: ByteSource | None = None) -> str:
    """Anti-forgery state value, independent of the PKCE verifier."""
    if num_bytes < 16:
        raise ValueError("OAuth state needs at least 16 bytes of entropy")
    source = token_bytes or secrets.token_bytes
    return _b64url(source(num_bytes))


__all__ = ["PKCEPair", "derive_challenge", "generate_pkce_pair", "generate_state"]
