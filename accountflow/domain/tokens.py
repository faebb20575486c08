"""
Token issuance and expiry policy.

Verification IDs and password reset tokens are short random strings drawn
from a URL-safe alphabet. They are not checked for uniqueness: with 22
characters of 6 bits each a collision is negligible.
"""

import secrets
import string
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from .account import Token
from .exceptions import EntropyFailure

TOKEN_ALPHABET = string.ascii_letters + string.digits + "-_"
TOKEN_LENGTH = 22
CORRELATION_ID_LENGTH = 8

VERIFICATION_TTL = timedelta(hours=72)
RESET_TTL = timedelta(minutes=30)


def utcnow() -> datetime:
    """Current wall-clock time, timezone-aware."""
    return datetime.now(timezone.utc)


def random_id(length: int) -> str:
    """
    Generate a random identifier from the token alphabet.

    Raises:
        EntropyFailure: If the operating system's secure random source
            is unavailable
    """
    try:
        return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))
    except (NotImplementedError, OSError) as e:
        raise EntropyFailure(f"Secure random source unavailable: {e}") from e


def is_expired(token: Token, ttl: timedelta, now: datetime) -> bool:
    """A token is still valid at exactly created_at + ttl."""
    return now > token.created_at + ttl


@dataclass
class TokenIssuer:
    """Mints verification and reset tokens stamped with the issuance time."""

    length: int = TOKEN_LENGTH
    clock: Callable[[], datetime] = field(default=utcnow)

    def issue(self) -> Token:
        """
        Issue a new token.

        Raises:
            EntropyFailure: If no secure random source is available
        """
        return Token(value=random_id(self.length), created_at=self.clock())

    def correlation_id(self) -> str:
        """Short identifier attached to program errors. Never raises."""
        try:
            return random_id(CORRELATION_ID_LENGTH)
        except EntropyFailure:
            return "noid"
