"""
Account domain service - signup, verification, login and credential changes.

Every workflow follows the same shape: normalize untrusted input, ask the
state machine or enumeration guard what is allowed, persist the outcome in a
single storage write, notify through the mail sender, and return a Page.

Error handling
==============

- UserInputError and AuthenticationError propagate unchanged; they carry a
  reason code the HTTP layer may show.
- Anything else raised by a collaborator (storage, mail, sessions, hashing,
  entropy) is logged with a correlation id and re-raised as a ProgramError
  so the client never sees the underlying cause.
"""

import logging
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from email_validator import EmailNotValidError, validate_email

from .account import Account, AccountState
from .credentials import BcryptHasher, CredentialVerifier
from .exceptions import (
    AuthenticationError,
    CurrentPasswordMissing,
    CurrentPasswordWrong,
    InvalidEmail,
    InvalidLogin,
    NotLoggedIn,
    PasswordsDontMatch,
    ProgramError,
    TokenExpired,
    TokenNotFound,
    UserInputError,
    VerificationIncomplete,
    WeakPassword,
)
from .guard import EnumerationGuard
from .password_policy import ReasonablePasswordPolicy
from .ports import (
    AccountStorage,
    CredentialHasher,
    MailSender,
    PasswordPolicy,
    PasswordVerdict,
    Session,
    SessionManager,
)
from .registrar import AtomicRegistrar
from .state_machine import AccountStateMachine
from .throttle import LoginThrottle, VerificationThrottle
from .tokens import TokenIssuer, utcnow

logger = logging.getLogger(__name__)

VERIFICATION_NEW = "verification_new"
VERIFICATION_EXISTING = "verification_existing"

DEFAULT_PASSWORD_NAMES = ("example.com", "ExampleCom", "Example")


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    """Check address syntax only; deliverability is proven by verification."""
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


@dataclass(frozen=True)
class Page:
    """
    The outcome of a workflow, as shown to the user.

    Enumeration-sensitive workflows return the same Page on every branch.
    """

    name: str
    email: str | None = None
    logged_out: bool = False


@dataclass(frozen=True)
class LoginResult:
    """A successful login. restricted is True for EXPIRED accounts."""

    session: Session
    account: Account
    restricted: bool = False


@dataclass
class AccountService:
    """
    Domain service for the account lifecycle.

    All collaborators are injected; the service keeps no account state of
    its own.
    """

    storage: AccountStorage
    sessions: SessionManager
    mail_sender: MailSender
    password_policy: PasswordPolicy = field(default_factory=ReasonablePasswordPolicy)
    hasher: CredentialHasher = field(default_factory=BcryptHasher)
    state_machine: AccountStateMachine = field(default_factory=AccountStateMachine)
    login_throttle: LoginThrottle = field(default_factory=LoginThrottle)
    verification_throttle: VerificationThrottle = field(default_factory=VerificationThrottle)
    password_names: tuple[str, ...] = DEFAULT_PASSWORD_NAMES
    clock: Callable[[], datetime] = utcnow
    issuer: TokenIssuer | None = None
    on_login: Callable[[Account, str | None], None] | None = None

    def __post_init__(self) -> None:
        if self.issuer is None:
            self.issuer = TokenIssuer(clock=self.clock)
        self.registrar = AtomicRegistrar(self.storage, self.state_machine)
        self.guard = EnumerationGuard(
            storage=self.storage,
            mail_sender=self.mail_sender,
            issuer=self.issuer,
            state_machine=self.state_machine,
        )
        self.verifier = CredentialVerifier(self.hasher)

    # ------------------------------------------------------------------
    # Signup and verification
    # ------------------------------------------------------------------

    def signup(
        self,
        email: str,
        password: str,
        password_confirm: str,
        request_info: dict[str, Any] | None = None,
    ) -> Page:
        """
        Create an account, or quietly handle an email that already exists.

        The returned page is the same whether the account is new, was
        created earlier but never verified, or is already verified.

        Raises:
            InvalidEmail: Address is not a syntactically valid email
            PasswordsDontMatch: Confirmation differs
            WeakPassword: Policy rejected the password
            ProgramError: Any collaborator failed
        """
        email = normalize_email(email)

        # Syntax only. The verification email is the real test.
        if not is_valid_email(email):
            logger.info("Sign-up rejected, invalid email: %s", email)
            raise InvalidEmail(email)

        if password != password_confirm:
            logger.info("Passwords for %s don't match", email)
            raise PasswordsDontMatch(email)

        self._check_password(password, email, f"sign-up {email}")

        with self._program_errors("Could not generate password hash"):
            password_hash = self.hasher.hash(password)

        with self._program_errors("Unable to create a verification ID"):
            token = self.issuer.issue()
            candidate = Account(
                id=uuid.uuid4().hex,
                email=email,
                credential_hash=password_hash,
                state=AccountState.CREATED,
                verification_token=token,
            )

        with self._program_errors(f"Error saving new account {email}", "Error saving new user"):
            existing = self.registrar.register_or_fetch(candidate)

        template = VERIFICATION_NEW
        data = self._mail_context(request_info)
        if existing is None:
            logger.info("Sending verification email for new account: %s (%s)", candidate.id, email)
        elif existing.state in (AccountState.VERIFIED, AccountState.EXPIRED):
            # Don't verify again, tell the owner about the attempt instead
            template = VERIFICATION_EXISTING
            logger.info(
                "Sending verification notification for existing account: %s (%s)", existing.id, email
            )
        else:
            with self._program_errors(
                f"Cannot refresh verification ID for account {existing.id} ({email})",
                "Error exchanging verification ID",
            ):
                candidate = self.registrar.refresh_unverified(existing, candidate)
            logger.info(
                "Sending repeated verification email for new account: %s (%s)", candidate.id, email
            )

        if template == VERIFICATION_NEW:
            data["verification"] = token.value
            data["validity"] = (token.created_at + self.state_machine.verification_ttl).isoformat()
        data["email"] = email

        with self._program_errors("Could not send verification email"):
            self.mail_sender.send(email, template, data)

        return Page("verificationsent", email)

    def verify(self, token: str, session: Session | None = None) -> Page:
        """
        Consume a verification token and mark the account VERIFIED.

        Any account logged into the requesting session is logged out so the
        user starts afresh with their verified account.

        Raises:
            TokenNotFound: No account holds this token
            TokenExpired: Token is older than the verification window
        """
        self.verification_throttle.wait()

        with self._program_errors("Could not load account for verification ID"):
            account = self.storage.find_by_verification_token(token) if token else None
        if account is None:
            logger.info("Verification ID not found: %s", token)
            raise TokenNotFound(token)

        try:
            with self._program_errors(f"Could not verify account {account.id} ({account.email})"):
                self.state_machine.verify(account, token, self.clock())
        except TokenExpired:
            logger.info("Verification ID for account %s (%s) expired: %s", account.id, account.email, token)
            raise
        except TokenNotFound:
            logger.warning(
                "Wrong account loaded: %s (%s) does not hold verification ID %s",
                account.id,
                account.email,
                token,
            )
            raise

        with self._program_errors(
            f"Could not verify account {account.id} ({account.email})", "Could not verify user"
        ):
            try:
                self.storage.update(account, consumed_token=token)
            except TokenNotFound:
                logger.info("Verification ID already used: %s", token)
                raise
        logger.info("Account %s (%s) has been verified", account.id, account.email)

        if session is not None and session.account_id is not None:
            with self._program_errors("Could not log out session after verification"):
                session.detach()

        return Page("verified", account.email)

    # ------------------------------------------------------------------
    # Login and logout
    # ------------------------------------------------------------------

    def login(self, email: str, password: str, ip_address: str | None = None) -> LoginResult:
        """
        Authenticate and attach the account to a new session.

        Unknown emails and wrong passwords both raise InvalidLogin after the
        same throttling and the same bcrypt work.

        Raises:
            InvalidLogin: Unknown email or wrong password
            VerificationIncomplete: Correct credentials, email not verified
        """
        email = normalize_email(email)

        with self.login_throttle.admit(email):
            with self._program_errors("Could not load user"):
                account = self.storage.find_by_email(email)

            valid = self.verifier.verify(account.credential_hash if account else None, password)
            if account is None:
                logger.info("Non-existing email entered during login: %s", email)
                raise InvalidLogin()
            if not valid:
                logger.info("Login password not correct: %s (%s)", account.id, email)
                raise InvalidLogin()

            try:
                with self._program_errors(f"Invalid state for account {account.id} ({email})"):
                    restricted = self.state_machine.check_login(account)
            except VerificationIncomplete:
                logger.info(
                    "Login attempted despite account not yet verified: %s (%s)", account.id, email
                )
                raise

            with self._program_errors("Error starting session during login", "Could not start user session"):
                session = self.sessions.start_session()
                session.attach(account.id)

        logger.info("Account %s (%s) was logged in", account.id, email)
        if self.on_login is not None:
            with self._program_errors("Login hook failed"):
                self.on_login(account, ip_address)
        return LoginResult(session=session, account=account, restricted=restricted)

    def logout(self, session: Session | None) -> Page:
        """Log the session's account out and discard the session."""
        if session is None or session.account_id is None:
            logger.info("Logout requested when user is already logged out")
            return Page("loggedout", logged_out=True)

        account_id = session.account_id
        with self._program_errors("Could not log user out of session"):
            session.detach()
            self.sessions.destroy_session(session.id)

        logger.info("Account %s was logged out", account_id)
        return Page("loggedout", logged_out=True)

    def current_account(self, session: Session | None) -> Account | None:
        """
        Return the account logged into a session, if any.

        Callers must check for EXPIRED themselves and restrict access.

        Raises:
            VerificationIncomplete: The attached account is not verified;
                it is logged out of the session
        """
        if session is None or session.account_id is None:
            return None

        with self._program_errors("Could not load account for session"):
            account = self.storage.find_by_id(session.account_id)
            if account is None:
                logger.warning("Session %s refers to unknown account %s", session.id, session.account_id)
                session.detach()
                return None
            state = self.state_machine.state_of(account)

        if state == AccountState.CREATED:
            with self._program_errors("Could not log out unverified account"):
                session.detach()
            logger.info(
                "Login check failed because account is not verified: %s (%s)", account.id, account.email
            )
            raise VerificationIncomplete(account.id)

        return account

    # ------------------------------------------------------------------
    # Forgotten and reset password
    # ------------------------------------------------------------------

    def forgotten_password(self, email: str, request_info: dict[str, Any] | None = None) -> Page:
        """
        Email a reset link, or an informational note for unknown addresses.

        The returned page never depends on whether the account exists.
        """
        email = normalize_email(email)
        with self._program_errors(
            f"Could not process forgotten password for {email}", "Could not send password reset email"
        ):
            self.guard.forgotten_password(email, self._mail_context(request_info))
        return Page("resetlinksent", email)

    def check_reset_token(self, token: str) -> Page:
        """
        Validate a reset token before showing the new-password form.

        Raises:
            TokenNotFound: No account holds this token
            TokenExpired: Token is older than the reset window
        """
        self._load_reset_account(token)
        return Page("resetpassword")

    def reset_password(self, token: str, password: str, password_confirm: str) -> Page:
        """
        Set a new password using a reset token, then log out all sessions.

        Raises:
            TokenNotFound: No account holds this token
            TokenExpired: Token is older than the reset window
            PasswordsDontMatch: Confirmation differs
            WeakPassword: Policy rejected the password
        """
        account = self._load_reset_account(token)

        if password != password_confirm:
            logger.info("New passwords for %s (%s) don't match", account.id, account.email)
            raise PasswordsDontMatch(account.email)

        self._check_password(password, account.email, f"password reset {account.id} ({account.email})")

        with self._program_errors("Could not generate new password hash"):
            password_hash = self.hasher.hash(password)

        with self._program_errors("Could not save user with new password"):
            self.state_machine.consume_reset_token(account, token, password_hash, self.clock())
            try:
                self.storage.update(account, consumed_token=token)
            except TokenNotFound:
                logger.info("Reset password token already used: %s", token)
                raise
        logger.info("Password was reset for account %s (%s)", account.id, account.email)

        with self._program_errors("Could not log user out of all sessions"):
            self.sessions.invalidate_all_sessions_for(account.id)

        return Page("passwordreset", account.email)

    # ------------------------------------------------------------------
    # Changing email and password
    # ------------------------------------------------------------------

    def change(
        self,
        session: Session | None,
        email: str | None,
        current_password: str,
        password: str = "",
        password_confirm: str = "",
        request_info: dict[str, Any] | None = None,
    ) -> Page:
        """
        Change the logged-in account's email and/or password.

        The current password is required for any change. An email change
        sends the account back to CREATED and logs it out everywhere,
        including this session.

        Raises:
            NotLoggedIn: No verified account in the session
            CurrentPasswordMissing: Current password not supplied
            CurrentPasswordWrong: Current password incorrect
            PasswordsDontMatch: New password confirmation differs
            WeakPassword: Policy rejected the new password
            InvalidEmail: New address is not a syntactically valid email
        """
        account = self.current_account(session)
        if account is None:
            raise NotLoggedIn()

        new_email = normalize_email(email) if email else account.email
        email_changed = new_email != account.email
        password_changed = password != ""

        if not email_changed and not password_changed:
            return Page("changeinfos", account.email)

        # The current password is needed for any change
        if not current_password:
            logger.info("Account %s (%s) tried to make changes, current password not provided", account.id, account.email)
            raise CurrentPasswordMissing()
        if not self.verifier.verify(account.credential_hash, current_password):
            logger.info("Account %s (%s) tried to make changes, current password wrong", account.id, account.email)
            raise CurrentPasswordWrong()

        password_hash = None
        if password_changed:
            if password != password_confirm:
                logger.info("Changed passwords for %s (%s) don't match", account.id, account.email)
                raise PasswordsDontMatch(account.email)
            self._check_password(password, account.email, f"change {account.id} ({account.email})")
            with self._program_errors("Could not generate changed password hash"):
                password_hash = self.hasher.hash(password)

        decision = None
        if email_changed:
            if not is_valid_email(new_email):
                logger.info(
                    "Account %s (%s) tried to make changes, new email invalid: %s",
                    account.id,
                    account.email,
                    new_email,
                )
                raise InvalidEmail(new_email)
            with self._program_errors(
                "Could not send email change verification email", "Could not check email validity"
            ):
                decision = self.guard.email_change(account, new_email, self._mail_context(request_info))

        # All checks passed, apply everything in one write
        if password_hash is not None:
            account.credential_hash = password_hash
        if decision is not None:
            self.state_machine.reset_for_email_change(
                account, decision.token, None if decision.target_taken else new_email
            )
        with self._program_errors("Could not save user with changes"):
            self.storage.update(account)

        if password_hash is not None:
            logger.info("Password was changed for account %s (%s)", account.id, account.email)
        if decision is None:
            return Page("infoschanged", account.email)

        logger.info("Email address change requested for account %s to %s", account.id, new_email)
        with self._program_errors("Could not log user out of all sessions"):
            self.sessions.invalidate_all_sessions_for(account.id)
            session.detach()
        return Page("infoschanged", new_email, logged_out=True)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_reset_account(self, token: str) -> Account:
        with self._program_errors("Could not load user via password reset token", "Could not load user"):
            account = self.storage.find_by_reset_token(token) if token else None
        if account is None:
            logger.info("Reset password token unknown: %s", token)
            raise TokenNotFound(token)

        try:
            self.state_machine.check_reset_token(account, token, self.clock())
        except TokenExpired:
            logger.info("Password reset token for account %s (%s) expired: %s", account.id, account.email, token)
            raise
        return account

    def _check_password(self, password: str, email: str, what: str) -> None:
        verdict = self.password_policy.assess(password, [*self.password_names, email])
        if verdict != PasswordVerdict.OK:
            logger.info("Password was rejected for %s, reason: %s", what, verdict.value)
            raise WeakPassword(verdict)

    def _mail_context(self, request_info: dict[str, Any] | None) -> dict[str, Any]:
        return {"date": self.clock().isoformat(), **(request_info or {})}

    @contextmanager
    def _program_errors(self, internal_message: str, public_message: str | None = None) -> Iterator[None]:
        """
        Convert collaborator failures into logged ProgramErrors.

        User input and authentication errors pass through untouched, as do
        ProgramErrors that already carry a correlation id.
        """
        try:
            yield
        except (UserInputError, AuthenticationError):
            raise
        except ProgramError as e:
            if e.correlation_id is not None:
                raise
            raise self._program_error(internal_message, public_message or e.public_message, e, type(e)) from e
        except Exception as e:
            raise self._program_error(internal_message, public_message or internal_message, e, ProgramError) from e

    def _program_error(
        self, internal_message: str, public_message: str, cause: Exception, error_type: type[ProgramError]
    ) -> ProgramError:
        correlation_id = self.issuer.correlation_id()
        logger.error(
            "Program error %s: %s: %s", correlation_id, internal_message, cause, exc_info=cause
        )
        return error_type(internal_message, public_message=public_message, correlation_id=correlation_id)
