try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from postmetric.services.token_cipher import TokenCipherService


def test_token_cipher_roundtrip() -> None:
    cipher = TokenCipherService(secret="super-secret-key")
    plaintext = "sensitive-token"

    encrypted = cipher.encrypt(plaintext)
    assert encrypted != plaintext
    assert cipher.decrypt(encrypted) == plaintext


def test_token_cipher_rejects_bad_ciphertext() -> None:
    cipher = TokenCipherService(secret="another-secret")

    with pytest.raises(ValueError):
        cipher.decrypt("not-valid")


def test_encrypt_optional_passes_through_missing_values() -> None:
    cipher = TokenCipherService(secret="k")
    assert cipher.encrypt_optional(None) is None
    assert cipher.encrypt_optional("") is None


def test_previous_secret_still_decrypts_and_rotates() -> None:
    old = TokenCipherService(secret="old-secret")
    ciphertext = old.encrypt("refresh-token")

    current = TokenCipherService(secret="new-secret", previous_secrets=["old-secret"])
    assert current.decrypt(ciphertext) == "refresh-token"

    rotated = current.rotate(ciphertext)
    assert TokenCipherService(secret="new-secret").decrypt(rotated) == "refresh-token"
    with pytest.raises(ValueError):
        old.decrypt(rotated)


def test_requires_secret() -> None:
    with pytest.raises(ValueError):
        TokenCipherService(secret="")
