"""
Account State Machine - legal transitions and token freshness.

States:
- CREATED: Account exists, email not yet verified. Cannot log in.
- VERIFIED: Email verified. Full access.
- EXPIRED: Set by external policy. May log in, access is restricted.

Transitions owned by this module:
    CREATED  -> VERIFIED  (verify: token matches and is within 72 hours)
    any      -> CREATED   (email change: new verification token)

Token consumption and the transition it authorizes are applied to the same
Account object so the caller persists both in one storage write.

Any state value outside the closed set is treated as corruption and raises
InvalidAccountState, a program error rather than a validation failure.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from .account import Account, AccountState, Token
from .exceptions import InvalidAccountState, TokenExpired, TokenNotFound, VerificationIncomplete
from .tokens import RESET_TTL, VERIFICATION_TTL, is_expired

logger = logging.getLogger(__name__)


def _tokens_match(stored: Token | None, supplied: str) -> bool:
    if stored is None or not stored.value or not supplied:
        return False
    return secrets.compare_digest(stored.value.encode(), supplied.encode())


@dataclass
class AccountStateMachine:
    """Validates and applies account state transitions."""

    verification_ttl: timedelta = VERIFICATION_TTL
    reset_ttl: timedelta = RESET_TTL

    def state_of(self, account: Account) -> AccountState:
        """
        Return the account's state, refusing anything outside the enum.

        Raises:
            InvalidAccountState: If the stored state is unknown
        """
        return AccountState.parse(account.state)

    def verify(self, account: Account, supplied_token: str, now: datetime) -> None:
        """
        Consume a verification token, moving the account to VERIFIED.

        Raises:
            TokenNotFound: Token does not match the account's stored token
            TokenExpired: Token matched but was issued more than 72 hours ago
            InvalidAccountState: Account holds a verification token while
                not in CREATED
        """
        if not _tokens_match(account.verification_token, supplied_token):
            raise TokenNotFound(supplied_token)

        if self.state_of(account) != AccountState.CREATED:
            raise InvalidAccountState(
                f"Account {account.id} holds a verification token in state {account.state}"
            )

        if is_expired(account.verification_token, self.verification_ttl, now):
            raise TokenExpired(supplied_token)

        account.state = AccountState.VERIFIED
        account.verification_token = None

    def check_login(self, account: Account) -> bool:
        """
        Decide whether an authenticated account may start a session.

        Returns:
            True if the account is EXPIRED and the caller must restrict it

        Raises:
            VerificationIncomplete: Account is still CREATED
            InvalidAccountState: Unknown state
        """
        state = self.state_of(account)
        if state == AccountState.CREATED:
            raise VerificationIncomplete(account.id)
        return state == AccountState.EXPIRED

    def may_reset_password(self, account: Account) -> bool:
        """Only verified accounts receive reset tokens."""
        return self.state_of(account) == AccountState.VERIFIED

    def grant_reset_token(self, account: Account, token: Token) -> None:
        """Attach a freshly issued reset token, replacing any earlier one."""
        if not self.may_reset_password(account):
            raise InvalidAccountState(
                f"Reset token requested for account {account.id} in state {account.state}"
            )
        account.reset_token = token

    def check_reset_token(self, account: Account, supplied_token: str, now: datetime) -> None:
        """
        Validate a password reset token without consuming it.

        Raises:
            TokenNotFound: Token does not match
            TokenExpired: Token was issued more than 30 minutes ago
        """
        if not _tokens_match(account.reset_token, supplied_token):
            raise TokenNotFound(supplied_token)
        if is_expired(account.reset_token, self.reset_ttl, now):
            raise TokenExpired(supplied_token)

    def consume_reset_token(
        self, account: Account, supplied_token: str, new_hash: str, now: datetime
    ) -> None:
        """Re-validate the reset token, then swap in the new credential hash."""
        self.check_reset_token(account, supplied_token, now)
        account.credential_hash = new_hash
        account.reset_token = None

    def reset_for_email_change(
        self, account: Account, token: Token, new_email: str | None
    ) -> None:
        """
        Send the account back to CREATED with a new verification token.

        Args:
            account: Account being changed
            token: Verification token already issued for the new address
            new_email: Address to store, or None to keep the current one
                (used when the new address belongs to another account)
        """
        self.state_of(account)
        previous = account.state
        if new_email is not None:
            account.email = new_email
        account.state = AccountState.CREATED
        account.verification_token = token
        logger.debug("Account %s reset from %s to CREATED", account.id, previous)
