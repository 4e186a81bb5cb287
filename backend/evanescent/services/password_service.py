"""
Password hashing and verification using argon2id.

The hasher is a one-way function with fixed cost parameters taken from
settings; verification never raises on a mismatch or on a malformed stored
hash, it just answers False.
"""

import argon2

from evanescent.config import Settings, settings as default_settings


class PasswordService:
    def __init__(self, time_cost: int = 2, memory_cost: int = 65536):
        self._hasher = argon2.PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=1,
            hash_len=32,
            salt_len=16,
            type=argon2.Type.ID,
        )
        # Stand-in for unknown accounts; same cost parameters as real hashes
        self.dummy_hash = self._hasher.hash("evanescent-no-such-user")

    @classmethod
    def from_settings(cls, config: Settings = default_settings) -> "PasswordService":
        return cls(time_cost=config.password_time_cost, memory_cost=config.password_memory_cost)

    def hash(self, password: str) -> str:
        """Hash a password. Returns the full encoded hash (salt and parameters included)."""
        return self._hasher.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """Return True if `password` matches `password_hash`."""
        try:
            return self._hasher.verify(password_hash, password)
        except argon2.exceptions.VerifyMismatchError:
            return False
        except (argon2.exceptions.VerificationError, argon2.exceptions.InvalidHashError):
            # Corrupt or foreign stored hash
            return False
