"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks.
The work factor (rounds=12) takes ~100ms per hash on modern hardware;
tests drop it to the minimum (4) through settings.
"""

from functools import lru_cache

import bcrypt

DEFAULT_ROUNDS = 12

# bcrypt only looks at the first 72 bytes of input.
_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_MAX_BYTES]


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a password with bcrypt.

    Learn: bcrypt includes a random salt automatically and produces
    hashes starting with "$2b$". Two calls with the same password
    give two different hashes.
    """
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash.

    A mismatch is a normal False, and so is a hash bcrypt can't parse.
    """
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


@lru_cache(maxsize=None)
def dummy_hash(rounds: int = DEFAULT_ROUNDS) -> str:
    """A throwaway hash at the given cost.

    Verified against when the email is unknown, so a failed login costs the
    same whether or not the account exists.
    """
    return hash_password("not-a-real-password", rounds=rounds)
