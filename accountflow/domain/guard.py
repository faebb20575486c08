"""
Enumeration guard - uniform outcomes for flows that look up an email.

Forgotten-password and email-change requests must not reveal whether an
email address is registered. Both flows look the address up, both mint a
token, and both send exactly one notification. The only thing that differs
between the branches is which template that notification uses; the caller
returns the same page either way.
"""

import logging
from dataclasses import dataclass
from typing import Any

from .account import Account, Token
from .ports import AccountStorage, MailSender
from .state_machine import AccountStateMachine
from .tokens import TokenIssuer

logger = logging.getLogger(__name__)

RESET_EXISTING = "reset_existing"
RESET_UNKNOWN = "reset_unknown"
VERIFICATION_CHANGED = "verification_changed"
VERIFICATION_EXISTING = "verification_existing"


@dataclass(frozen=True)
class EmailChangeDecision:
    """What an email change may do, decided without telling the caller."""

    token: Token
    target_taken: bool


@dataclass
class EnumerationGuard:
    """Runs the email lookup branches behind a single public outcome."""

    storage: AccountStorage
    mail_sender: MailSender
    issuer: TokenIssuer
    state_machine: AccountStateMachine

    def forgotten_password(self, email: str, context: dict[str, Any]) -> str:
        """
        Issue a reset token if the email belongs to a verified account.

        Unknown and unverified addresses receive an informational email
        instead. Returns the template used, for auditing only; it must never
        reach the client.
        """
        account = self.storage.find_by_email(email)
        token = self.issuer.issue()
        data = dict(context, email=email)

        if account is not None and self.state_machine.may_reset_password(account):
            self.state_machine.grant_reset_token(account, token)
            self.storage.update(account)
            data["token"] = token.value
            data["validity"] = (token.created_at + self.state_machine.reset_ttl).isoformat()
            template = RESET_EXISTING
            logger.info(
                "Sending password reset email for existing account: %s (%s)", account.id, email
            )
        else:
            template = RESET_UNKNOWN
            logger.info("Sending password reset info email for unknown account: %s", email)

        self.mail_sender.send(email, template, data)
        return template

    def email_change(
        self, account: Account, new_email: str, context: dict[str, Any]
    ) -> EmailChangeDecision:
        """
        Notify the new address about an email change.

        If the address already belongs to another account its owner is told
        about the attempt; otherwise the new address receives a verification
        link. The token is issued in both cases.
        """
        existing = self.storage.find_by_email(new_email)
        token = self.issuer.issue()
        data = dict(context, email=new_email)

        if existing is not None:
            template = VERIFICATION_EXISTING
            logger.info(
                "Sending verification notification for existing account upon email change: %s (%s)",
                existing.id,
                new_email,
            )
        else:
            template = VERIFICATION_CHANGED
            data["verification"] = token.value
            data["validity"] = (token.created_at + self.state_machine.verification_ttl).isoformat()
            logger.info("Sending verification email for changed address: %s (%s)", account.id, new_email)

        self.mail_sender.send(new_email, template, data)
        return EmailChangeDecision(token=token, target_taken=existing is not None)
