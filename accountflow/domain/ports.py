"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from enum import Enum
from typing import Any, Protocol

from .account import Account


class PasswordVerdict(str, Enum):
    """Outcome of a password policy assessment."""

    OK = "ok"
    TOO_SHORT = "too_short"
    IS_A_NAME = "is_a_name"
    TOO_COMMON = "too_common"
    REPETITIVE = "repetitive"
    SEQUENCE = "sequence"


class AccountStorage(Protocol):
    """Port interface for account persistence."""

    def find_by_email(self, email: str) -> Account | None:
        """Return the account with this normalized email, or None."""
        ...

    def find_by_id(self, account_id: str) -> Account | None:
        """Return the account with this identifier, or None."""
        ...

    def find_by_verification_token(self, token: str) -> Account | None:
        """Return the account holding this verification token, or None."""
        ...

    def find_by_reset_token(self, token: str) -> Account | None:
        """Return the account holding this password reset token, or None."""
        ...

    def insert_if_absent(self, account: Account) -> Account | None:
        """
        Atomically store a new account unless its email is taken.

        The existence check and the insert must form a single critical
        section with respect to concurrent calls for the same email.

        Args:
            account: Candidate account with a normalized email

        Returns:
            The existing account if the email was already stored (the
            candidate is discarded), otherwise None
        """
        ...

    def update(self, account: Account, consumed_token: str | None = None) -> None:
        """
        Replace the stored account with the same id in a single write.

        Args:
            account: Account to store
            consumed_token: Token this write uses up. The write only happens
                if the stored account still holds it as its verification or
                reset token, so a token can be consumed at most once even
                by concurrent requests

        Raises:
            TokenNotFound: consumed_token is no longer held by the account
            StorageError: If the account does not exist or the write fails
        """
        ...


class Session(Protocol):
    """A browser session, optionally attached to an account."""

    id: str
    account_id: str | None

    def attach(self, account_id: str) -> None:
        """Log the account into this session."""
        ...

    def detach(self) -> None:
        """Log whatever account is attached out of this session."""
        ...


class SessionManager(Protocol):
    """Port interface for session issuance and invalidation."""

    def start_session(self) -> Session:
        """Create a new, empty session."""
        ...

    def load_session(self, session_id: str) -> Session | None:
        """Return an existing session, or None."""
        ...

    def destroy_session(self, session_id: str) -> None:
        """Forget a session entirely."""
        ...

    def invalidate_all_sessions_for(self, account_id: str) -> None:
        """Log the account out of every session it is attached to."""
        ...


class MailSender(Protocol):
    """Port interface for outbound notifications."""

    def send(self, recipient: str, template_name: str, context: dict[str, Any]) -> None:
        """
        Send the named notification template to a recipient.

        Args:
            recipient: Normalized email address
            template_name: Notification template chosen by the workflow
            context: Values the template is rendered with
        """
        ...


class PasswordPolicy(Protocol):
    """Port interface for password strength assessment."""

    def assess(self, password: str, excluded_words: list[str]) -> PasswordVerdict:
        """Return PasswordVerdict.OK or the reason the password is rejected."""
        ...


class CredentialHasher(Protocol):
    """Port interface for adaptive one-way password hashing."""

    def hash(self, password: str) -> str:
        """Return a salted hash of the password."""
        ...

    def compare(self, password_hash: str, password: str) -> bool:
        """Return True if the password matches the hash."""
        ...
