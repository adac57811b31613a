"""PBKDF2-SHA256 password hashing."""

import base64
import hashlib
import hmac
import os

_PBKDF2_ALGO = "sha256"
_PBKDF2_ITERATIONS = 100_000
_SALT_BYTES = 16


def _pbkdf2_hash(password: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac(_PBKDF2_ALGO, password.encode("utf-8"), salt, _PBKDF2_ITERATIONS)


def hash_password(password: str) -> str:
    """Stored format: base64(salt || derived_key)."""
    salt = os.urandom(_SALT_BYTES)
    return base64.b64encode(salt + _pbkdf2_hash(password, salt)).decode("ascii")


def verify_password(plain_password: str, stored_hash: str) -> bool:
    try:
        raw = base64.b64decode(stored_hash.encode("ascii"), validate=True)
    except ValueError:
        return False
    if len(raw) <= _SALT_BYTES:
        return False
    salt, stored_dk = raw[:_SALT_BYTES], raw[_SALT_BYTES:]
    return hmac.compare_digest(stored_dk, _pbkdf2_hash(plain_password, salt))
