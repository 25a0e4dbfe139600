"""argon2id hashing for player passwords and storefront placeholder accounts.

Credential checks (login) live in the external identity service; this module
only produces hashes for rows the core creates itself.
"""

from __future__ import annotations

from functools import lru_cache

import argon2

from predictearn.errors import ValidationError

PASSWORD_MIN_LENGTH = 6

_hasher = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=65536,  # 64 MB
    parallelism=1,
    type=argon2.Type.ID,
)


def check_password_policy(password: str) -> None:
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")


def hash_password(password: str) -> str:
    return _hasher.hash(password)


@lru_cache(maxsize=4)
def placeholder_password_hash(password: str) -> str:
    """Hash of the shared placeholder credential for auto-created order customers.

    Computed once per process so webhook bursts do not pay argon2 per order.
    """
    return _hasher.hash(password)
