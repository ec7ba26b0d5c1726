"""
Password hashing, validation and generation.

Hashes are argon2id. Generated passwords (sent out after a reset) are letters
only so they survive SMS and are easy to type.
"""

from __future__ import annotations

import secrets
import string

import argon2

from qaforum.config import get_settings

_hasher = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=65536,  # 64 MB
    parallelism=1,
    hash_len=32,
    salt_len=16,
    type=argon2.Type.ID,  # argon2id
)


class PasswordStrengthError(ValueError):
    """Raised when a password does not meet strength requirements."""


def hash_password(password: str) -> str:
    """Hash a password using argon2id. Returns the full hash string."""
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against its argon2id hash.

    Returns True if the password matches. Never raises on mismatch.
    """
    try:
        return _hasher.verify(password_hash, password)
    except argon2.exceptions.VerifyMismatchError:
        return False
    except argon2.exceptions.InvalidHashError:
        return False


def check_needs_rehash(password_hash: str) -> bool:
    """Check if the hash needs to be updated (parameters changed)."""
    return _hasher.check_needs_rehash(password_hash)


def validate_password_strength(password: str) -> None:
    """Raise PasswordStrengthError if the password is empty, too short or too long."""
    settings = get_settings()
    if not password or not password.strip():
        msg = "Password cannot be empty"
        raise PasswordStrengthError(msg)
    if len(password) < settings.password_min_length:
        msg = f"Password must be at least {settings.password_min_length} characters"
        raise PasswordStrengthError(msg)
    if len(password) > settings.password_max_length:
        msg = f"Password must not exceed {settings.password_max_length} characters"
        raise PasswordStrengthError(msg)


def generate_password(length: int | None = None) -> str:
    """Half uppercase, half lowercase letters, shuffled."""
    length = length or get_settings().generated_password_length
    upper = length // 2
    chars = [secrets.choice(string.ascii_uppercase) for _ in range(upper)]
    chars += [secrets.choice(string.ascii_lowercase) for _ in range(length - upper)]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)
