"""
Password hashing and verification.

PBKDF2-HMAC-SHA512 (100 000 iterations, 64-byte key) over a random
per-user salt.  The salt is persisted as hex text and that hex text is
what gets fed to the KDF, so rows created by earlier deployments keep
verifying.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Tuple, Union

_HASH_NAME = "sha512"
_ITERATIONS = 100_000
_KEY_LENGTH = 64
_SALT_BYTES = 16


def generate_salt() -> bytes:
    """Fresh cryptographically random salt (16 bytes)."""
    return secrets.token_bytes(_SALT_BYTES)


def derive_hash(password: str, salt: Union[bytes, str]) -> str:
    """Derive the hex-encoded key for ``password`` under ``salt``."""
    if isinstance(salt, str):
        salt = salt.encode("utf-8")
    key = hashlib.pbkdf2_hmac(
        _HASH_NAME, password.encode("utf-8"), salt, _ITERATIONS, dklen=_KEY_LENGTH
    )
    return key.hex()


def new_credential(password: str) -> Tuple[str, str]:
    """Return ``(salt_hex, password_hash)`` for a brand-new credential."""
    salt_hex = generate_salt().hex()
    return salt_hex, derive_hash(password, salt_hex)


def verify_password(password: str, salt_hex: str, password_hash: str) -> bool:
    """Whole-value comparison of a freshly derived hash against the stored one."""
    if not salt_hex or not password_hash:
        return False
    computed = derive_hash(password, salt_hex)
    return hmac.compare_digest(computed.encode("ascii"), password_hash.encode("utf-8"))
