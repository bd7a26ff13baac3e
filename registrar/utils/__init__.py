# Registrar Utils
from registrar.utils.crypto import (
    hash_password,
    verify_password,
)

__all__ = [
    "hash_password",
    "verify_password",
]
