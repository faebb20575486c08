"""
Domain layer - Pure business logic with zero framework imports.

This package contains the account state machine, token lifecycle, atomic
registration, enumeration guard and the workflows built on them. It defines
its own port interfaces for infrastructure abstraction, ensuring true
hexagonal architecture decoupling.
"""

from .account import Account, AccountState, Token
from .accounts import AccountService, LoginResult, Page, normalize_email
from .exceptions import (
    AccountError,
    AuthenticationError,
    CurrentPasswordMissing,
    CurrentPasswordWrong,
    EntropyFailure,
    InvalidAccountState,
    InvalidEmail,
    InvalidLogin,
    MailDeliveryError,
    NotLoggedIn,
    PasswordsDontMatch,
    ProgramError,
    StorageError,
    TokenExpired,
    TokenNotFound,
    UserInputError,
    VerificationIncomplete,
    WeakPassword,
)
from .ports import (
    AccountStorage,
    CredentialHasher,
    MailSender,
    PasswordPolicy,
    PasswordVerdict,
    Session,
    SessionManager,
)
from .state_machine import AccountStateMachine
from .tokens import RESET_TTL, VERIFICATION_TTL, TokenIssuer

__all__ = [
    "RESET_TTL",
    "VERIFICATION_TTL",
    "Account",
    "AccountError",
    "AccountService",
    "AccountState",
    "AccountStateMachine",
    "AccountStorage",
    "AuthenticationError",
    "CredentialHasher",
    "CurrentPasswordMissing",
    "CurrentPasswordWrong",
    "EntropyFailure",
    "InvalidAccountState",
    "InvalidEmail",
    "InvalidLogin",
    "LoginResult",
    "MailDeliveryError",
    "MailSender",
    "NotLoggedIn",
    "Page",
    "PasswordPolicy",
    "PasswordVerdict",
    "PasswordsDontMatch",
    "ProgramError",
    "Session",
    "SessionManager",
    "StorageError",
    "Token",
    "TokenExpired",
    "TokenIssuer",
    "TokenNotFound",
    "UserInputError",
    "VerificationIncomplete",
    "WeakPassword",
    "normalize_email",
]
