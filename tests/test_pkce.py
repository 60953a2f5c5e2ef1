try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import base64
import hashlib
import re

import pytest

from postmetric.services.pkce import (
    derive_challenge,
    generate_pkce_pair,
    generate_state,
)

URL_SAFE = re.compile(r"^[A-Za-z0-9_-]+$")


def _expected_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def test_challenge_is_unpadded_s256_of_verifier() -> None:
    for _ in range(25):
        pair = generate_pkce_pair()
        assert pair.challenge == _expected_challenge(pair.verifier)
        assert "=" not in pair.challenge
        assert URL_SAFE.match(pair.challenge)
        assert URL_SAFE.match(pair.verifier)
        assert 43 <= len(pair.verifier) <= 128


def test_rfc7636_appendix_b_vector() -> None:
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
    assert derive_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_injected_byte_source_is_deterministic() -> None:
    source = lambda n: bytes(range(n))  # noqa: E731
    first = generate_pkce_pair(token_bytes=source)
    second = generate_pkce_pair(token_bytes=source)
    assert first == second


def test_pairs_and_states_are_unique() -> None:
    verifiers = {generate_pkce_pair().verifier for _ in range(50)}
    states = {generate_state() for _ in range(50)}
    assert len(verifiers) == 50
    assert len(states) == 50


def test_rejects_low_entropy_requests() -> None:
    with pytest.raises(ValueError):
        generate_pkce_pair(16)
    with pytest.raises(ValueError):
        generate_state(8)
