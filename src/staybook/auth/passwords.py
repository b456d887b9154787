"""
staybook.auth.passwords

bcrypt password hashing.
"""

from __future__ import annotations

import bcrypt


def hash_password(password: str) -> str:
    # bcrypt only looks at the first 72 bytes; longer inputs are rejected by newer releases.
    return bcrypt.hashpw(password.encode("utf-8")[:72], bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:72], password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False
