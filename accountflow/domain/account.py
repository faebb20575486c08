"""
Account record and its state enum.

The account is a plain record. Everything the workflows need to know about
it is a field here; behaviour lives in the state machine and the service.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .exceptions import InvalidAccountState


class AccountState(str, Enum):
    """
    Account lifecycle states.

    Transitions:
    - CREATED -> VERIFIED (verification token consumed within its window)
    - any -> CREATED (email change)

    EXPIRED is set by an external policy only. Expired accounts may still
    log in but callers must restrict what they can do.
    """

    CREATED = "CREATED"
    VERIFIED = "VERIFIED"
    EXPIRED = "EXPIRED"

    @classmethod
    def parse(cls, value: object) -> "AccountState":
        """
        Convert a stored value into a state.

        Raises:
            InvalidAccountState: If the value is not one of the known states
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidAccountState(f"Unknown account state {value!r}") from None


@dataclass(frozen=True)
class Token:
    """An opaque proof token and the moment it was issued."""

    value: str
    created_at: datetime


@dataclass
class Account:
    """
    A user account.

    The email is always stored normalized. credential_hash is a bcrypt hash
    and must never be logged.
    """

    id: str
    email: str
    credential_hash: str
    state: AccountState = AccountState.CREATED
    verification_token: Token | None = None
    reset_token: Token | None = None

    def __repr__(self) -> str:
        return f"Account(id={self.id!r}, email={self.email!r}, state={self.state!r})"
