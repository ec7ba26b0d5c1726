"""Password hashing, strength rules and generated passwords."""

import pytest

from qaforum.auth.password import (
    PasswordStrengthError,
    generate_password,
    hash_password,
    validate_password_strength,
    verify_password,
)


class TestHashing:
    def test_round_trip(self):
        hashed = hash_password("secret123")
        assert hashed.startswith("$argon2id$")
        assert verify_password("secret123", hashed)
        assert not verify_password("secret124", hashed)

    def test_garbage_hash_never_raises(self):
        assert not verify_password("secret123", "not-a-hash")


class TestStrength:
    def test_too_short(self):
        with pytest.raises(PasswordStrengthError):
            validate_password_strength("abc")

    def test_blank(self):
        with pytest.raises(PasswordStrengthError):
            validate_password_strength("       ")

    def test_ok(self):
        validate_password_strength("secret123")


class TestGeneratePassword:
    def test_letters_only_half_upper(self):
        password = generate_password()
        assert len(password) == 8
        assert password.isalpha()
        assert sum(c.isupper() for c in password) == 4
        assert sum(c.islower() for c in password) == 4
