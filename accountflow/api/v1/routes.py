"""
API v1 routes.

Defines REST endpoints for the account lifecycle: signup, verification,
login, password reset and credential changes.

Endpoints are plain functions so FastAPI runs them in its threadpool; the
domain service blocks on bcrypt and on the login and verification throttles.
"""

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse

from accountflow.api.dependencies import (
    get_account_service,
    get_request_info,
    get_session,
)
from accountflow.api.errors import error_response
from accountflow.api.models import (
    AccountResponse,
    ChangeRequest,
    ErrorResponse,
    ForgottenPasswordRequest,
    LoginRequest,
    PageResponse,
    ResetPasswordRequest,
    SignupRequest,
)
from accountflow.config.settings import get_settings
from accountflow.domain.account import AccountState
from accountflow.domain.accounts import AccountService, Page
from accountflow.domain.exceptions import AccountError, NotLoggedIn
from accountflow.domain.ports import Session

router = APIRouter(tags=["v1"])

PAGE_MESSAGES = {
    "verificationsent": "Check your email to complete signup",
    "verified": "Email address verified, you can now log in",
    "loggedout": "Logged out",
    "resetlinksent": "Check your email for further instructions",
    "resetpassword": "Choose a new password",
    "passwordreset": "Password has been reset, you can now log in",
    "changeinfos": "Nothing was changed",
    "infoschanged": "Changes saved",
}

_USER_ERRORS = {
    400: {"model": ErrorResponse, "description": "Rejected input or invalid link"},
    500: {"model": ErrorResponse, "description": "Internal error with correlation id"},
}


def _page_response(page: Page, response: Response) -> PageResponse:
    if page.logged_out:
        response.delete_cookie(get_settings().session_cookie_name)
    return PageResponse(page=page.name, message=PAGE_MESSAGES[page.name], email=page.email)


@router.post(
    "/signup",
    response_model=PageResponse,
    responses=_USER_ERRORS,
    summary="Create an account",
    description="Submit email and password. A verification link is emailed; "
    "the response is the same whether or not the address is already registered.",
)
def signup(
    request_data: SignupRequest,
    response: Response,
    service: AccountService = Depends(get_account_service),
    request_info: dict[str, str] = Depends(get_request_info),
) -> PageResponse | JSONResponse:
    try:
        page = service.signup(
            request_data.email, request_data.password, request_data.password_confirm, request_info
        )
    except AccountError as e:
        return error_response(e)
    return _page_response(page, response)


@router.get(
    "/verify",
    response_model=PageResponse,
    responses=_USER_ERRORS,
    summary="Verify an email address",
)
def verify(
    response: Response,
    token: str = Query("", alias="id"),
    service: AccountService = Depends(get_account_service),
    session: Session | None = Depends(get_session),
) -> PageResponse | JSONResponse:
    """
    Consume the verification link's id.

    - **id**: Verification token from the email
    """
    try:
        page = service.verify(token, session)
    except AccountError as e:
        return error_response(e)
    return _page_response(page, response)


@router.post(
    "/login",
    response_model=AccountResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid email or password"},
        403: {"model": ErrorResponse, "description": "Email address not yet verified"},
        500: {"model": ErrorResponse, "description": "Internal error with correlation id"},
    },
    summary="Log in",
    description="Sets the session cookie. Unknown emails and wrong passwords "
    "produce identical responses.",
)
def login(
    request_data: LoginRequest,
    response: Response,
    service: AccountService = Depends(get_account_service),
    request_info: dict[str, str] = Depends(get_request_info),
) -> AccountResponse | JSONResponse:
    try:
        result = service.login(request_data.email, request_data.password, request_info["ip"] or None)
    except AccountError as e:
        return error_response(e)

    response.set_cookie(get_settings().session_cookie_name, result.session.id, httponly=True)
    return AccountResponse(
        id=result.account.id,
        email=result.account.email,
        state=result.account.state.value,
        restricted=result.restricted,
    )


@router.post("/logout", response_model=PageResponse, summary="Log out")
def logout(
    response: Response,
    service: AccountService = Depends(get_account_service),
    session: Session | None = Depends(get_session),
) -> PageResponse | JSONResponse:
    try:
        page = service.logout(session)
    except AccountError as e:
        return error_response(e)
    return _page_response(page, response)


@router.get(
    "/me",
    response_model=AccountResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Not logged in"},
        403: {"model": ErrorResponse, "description": "Email address not yet verified"},
    },
    summary="Describe the logged-in account",
)
def me(
    service: AccountService = Depends(get_account_service),
    session: Session | None = Depends(get_session),
) -> AccountResponse | JSONResponse:
    """EXPIRED accounts are reported as restricted."""
    try:
        account = service.current_account(session)
        if account is None:
            raise NotLoggedIn()
    except AccountError as e:
        return error_response(e)
    return AccountResponse(
        id=account.id,
        email=account.email,
        state=account.state.value,
        restricted=account.state == AccountState.EXPIRED,
    )


@router.post(
    "/forgotten-password",
    response_model=PageResponse,
    responses=_USER_ERRORS,
    summary="Request a password reset link",
    description="The response is the same whether or not the address is registered.",
)
def forgotten_password(
    request_data: ForgottenPasswordRequest,
    response: Response,
    service: AccountService = Depends(get_account_service),
    request_info: dict[str, str] = Depends(get_request_info),
) -> PageResponse | JSONResponse:
    try:
        page = service.forgotten_password(request_data.email, request_info)
    except AccountError as e:
        return error_response(e)
    return _page_response(page, response)


@router.get(
    "/reset-password",
    response_model=PageResponse,
    responses=_USER_ERRORS,
    summary="Check a password reset link",
)
def check_reset_token(
    response: Response,
    token: str = Query(""),
    service: AccountService = Depends(get_account_service),
) -> PageResponse | JSONResponse:
    try:
        page = service.check_reset_token(token)
    except AccountError as e:
        return error_response(e)
    return _page_response(page, response)


@router.post(
    "/reset-password",
    response_model=PageResponse,
    responses=_USER_ERRORS,
    summary="Choose a new password with a reset link",
)
def reset_password(
    request_data: ResetPasswordRequest,
    response: Response,
    service: AccountService = Depends(get_account_service),
) -> PageResponse | JSONResponse:
    try:
        page = service.reset_password(
            request_data.token, request_data.password, request_data.password_confirm
        )
    except AccountError as e:
        return error_response(e)
    return _page_response(page, response)


@router.post(
    "/change",
    response_model=PageResponse,
    responses={
        **_USER_ERRORS,
        401: {"model": ErrorResponse, "description": "Not logged in"},
    },
    summary="Change email address and/or password",
    description="Requires the current password. Changing the email address "
    "logs the account out everywhere until the new address is verified.",
)
def change(
    request_data: ChangeRequest,
    response: Response,
    service: AccountService = Depends(get_account_service),
    session: Session | None = Depends(get_session),
    request_info: dict[str, str] = Depends(get_request_info),
) -> PageResponse | JSONResponse:
    try:
        page = service.change(
            session,
            request_data.email,
            request_data.current_password,
            request_data.password,
            request_data.password_confirm,
            request_info,
        )
    except AccountError as e:
        return error_response(e)
    return _page_response(page, response)
