"""
Credential hashing and verification.

Security Design - Timing Oracle Prevention:
------------------------------------------
1. **bcrypt.checkpw()** dominates the cost of every check (~100ms at cost
   factor 10) and masks smaller timing differences.

2. **Dummy hash**: when no account exists for an email the supplied
   password is still compared against a hash pre-computed by the same
   hasher, at the same cost factor as real credentials, so an unknown
   email costs the same as a wrong password.

3. The verifier only ever answers True or False. Callers turn False into
   the same InvalidLogin error for both cases.
"""

import logging
from dataclasses import dataclass, field

import bcrypt

from .ports import CredentialHasher

logger = logging.getLogger(__name__)

_DUMMY_PASSWORD = "dummy_password_for_timing_safety"


class BcryptHasher:
    """
    Implements CredentialHasher protocol via bcrypt.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, cost: int = 10) -> None:
        self._cost = cost

    def hash(self, password: str) -> str:
        """Hash password using bcrypt with the configured cost factor."""
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self._cost)).decode()

    def compare(self, password_hash: str, password: str) -> bool:
        """Constant-time bcrypt comparison. Malformed hashes never match."""
        try:
            return bcrypt.checkpw(password.encode(), password_hash.encode())
        except ValueError:
            logger.warning("Stored credential hash is not a valid bcrypt hash")
            return False


@dataclass
class CredentialVerifier:
    """Checks a supplied password against a stored hash, or a dummy one."""

    hasher: CredentialHasher
    dummy_hash: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        # Used when an account doesn't exist; must share the real hashes' cost
        self.dummy_hash = self.hasher.hash(_DUMMY_PASSWORD)

    def verify(self, stored_hash: str | None, password: str) -> bool:
        """
        Compare a password against a stored credential hash.

        Args:
            stored_hash: Hash of the account's password, or None if there
                is no such account
            password: Plaintext password as submitted

        Returns:
            True only if an account exists and the password matches
        """
        # CRITICAL: always run the comparison, even without an account
        candidate = stored_hash if stored_hash else self.dummy_hash
        matched = self.hasher.compare(candidate, password)
        return matched and bool(stored_hash)
