"""
Domain error to HTTP response mapping.

Only the reason code and a fixed message ever reach the client. Program
errors expose nothing but their public message and correlation id.
"""

from fastapi import status
from fastapi.responses import JSONResponse

from accountflow.api.models import ErrorResponse
from accountflow.domain.exceptions import (
    AccountError,
    InvalidLogin,
    NotLoggedIn,
    ProgramError,
    VerificationIncomplete,
    WeakPassword,
)

ERROR_MESSAGES = {
    "invalidemail": "Invalid email address",
    "passwordsdontmatch": "Passwords don't match",
    "invalidpassword": "Password is not acceptable",
    "currentpasswordnotprovided": "Current password required",
    "currentpasswordwrong": "Current password is wrong",
    "wronglogin": "Invalid email or password",
    "verificationincomplete": "Email address not yet verified",
    "tokennotfound": "Link is invalid",
    "tokenexpired": "Link has expired",
    "notloggedin": "Not logged in",
}


def error_status(error: AccountError) -> int:
    """HTTP status code for a domain error."""
    if isinstance(error, ProgramError):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    if isinstance(error, (InvalidLogin, NotLoggedIn)):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(error, VerificationIncomplete):
        return status.HTTP_403_FORBIDDEN
    return status.HTTP_400_BAD_REQUEST


def error_response(error: AccountError) -> JSONResponse:
    """Render a domain error without leaking its cause."""
    if isinstance(error, ProgramError):
        body = ErrorResponse(detail=f"{error.public_message} ({error.correlation_id or 'noid'})")
    else:
        reason = getattr(error, "reason", None)
        detail = ERROR_MESSAGES.get(reason, "Request failed")
        if isinstance(error, WeakPassword):
            detail = f"{detail} ({getattr(error.verdict, 'value', error.verdict)})"
        body = ErrorResponse(detail=detail, reason=reason)
    return JSONResponse(status_code=error_status(error), content=body.model_dump())


