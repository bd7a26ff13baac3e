"""
Cryptographic utilities for Registrar.
"""

import base64
import hashlib

import bcrypt


BCRYPT_ROUNDS = 12


def _prehash(password: str) -> bytes:
    """
    Digest a password to a fixed 44-byte input for bcrypt.

    bcrypt only accepts 72 bytes, while the password policy may allow longer
    passwords or multi-byte characters.
    """
    digest = hashlib.sha256(password.encode("utf-8")).digest()
    return base64.b64encode(digest)


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: The password to hash.

    Returns:
        The bcrypt hash of the password.
    """
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(_prehash(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against its bcrypt hash.

    Args:
        password: The password to verify.
        password_hash: The bcrypt hash to check against.

    Returns:
        True if the password matches, False otherwise.
    """
    if not password or not password_hash:
        return False

    try:
        return bcrypt.checkpw(_prehash(password), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False
