"""
Domain exceptions - Semantic error types for the account lifecycle.

Three families, each handled differently by the HTTP layer:

- UserInputError: the submitted form is unacceptable. Carries a reason code
  that is safe to show to the user.
- AuthenticationError: credentials, tokens or account state do not permit
  the operation. The reason code is deliberately coarse so it never helps
  an attacker tell registered emails apart.
- ProgramError: infrastructure or invariant failure. The user only sees the
  public message plus a correlation id; the details go to the log.
"""


class AccountError(Exception):
    """Base class for account domain errors."""

    pass


class UserInputError(AccountError):
    """Submitted input was rejected."""

    reason = "invalidinput"


class InvalidEmail(UserInputError):
    """Email address is syntactically unusable."""

    reason = "invalidemail"


class PasswordsDontMatch(UserInputError):
    """Password and its confirmation differ."""

    reason = "passwordsdontmatch"


class WeakPassword(UserInputError):
    """Password policy rejected the password."""

    reason = "invalidpassword"

    def __init__(self, verdict: object) -> None:
        super().__init__(str(verdict))
        self.verdict = verdict


class CurrentPasswordMissing(UserInputError):
    """A change was requested without the current password."""

    reason = "currentpasswordnotprovided"


class CurrentPasswordWrong(UserInputError):
    """The current password supplied with a change was wrong."""

    reason = "currentpasswordwrong"


class AuthenticationError(AccountError):
    """Base class for authentication and authorization failures."""

    reason = "authenticationfailed"


class InvalidLogin(AuthenticationError):
    """Unknown email or wrong password. The two are never distinguished."""

    reason = "wronglogin"


class VerificationIncomplete(AuthenticationError):
    """Account exists but its email address has not been verified."""

    reason = "verificationincomplete"


class TokenNotFound(AuthenticationError):
    """No account holds the supplied verification or reset token."""

    reason = "tokennotfound"


class TokenExpired(AuthenticationError):
    """The token matched but its validity window has passed."""

    reason = "tokenexpired"


class NotLoggedIn(AuthenticationError):
    """The operation requires an authenticated session."""

    reason = "notloggedin"


class ProgramError(AccountError):
    """
    Unexpected failure that must be followed up by an operator.

    Attributes:
        public_message: Message that may be shown to the user
        correlation_id: Identifier linking the user-facing error to the log line
    """

    public_message = "Internal error"

    def __init__(
        self,
        message: str = "",
        *,
        public_message: str | None = None,
        correlation_id: str | None = None,
    ) -> None:
        super().__init__(message or self.public_message)
        if public_message is not None:
            self.public_message = public_message
        self.correlation_id = correlation_id


class EntropyFailure(ProgramError):
    """The cryptographically secure random source is unavailable."""

    public_message = "Could not generate a secure token"


class InvalidAccountState(ProgramError):
    """A state value outside the closed set was read. Indicates corruption."""

    public_message = "Invalid account state"


class StorageError(ProgramError):
    """The account store failed or rejected a write."""

    public_message = "Could not access account storage"


class MailDeliveryError(ProgramError):
    """The mail sender could not deliver a notification."""

    public_message = "Could not send email"
