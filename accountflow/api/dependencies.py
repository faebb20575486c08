"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from datetime import timedelta

from fastapi import Request

from accountflow.adapters.smtp.console import ConsoleMailSender
from accountflow.config.settings import get_settings
from accountflow.domain.accounts import AccountService
from accountflow.domain.credentials import BcryptHasher
from accountflow.domain.ports import AccountStorage, MailSender, Session, SessionManager
from accountflow.domain.state_machine import AccountStateMachine
from accountflow.domain.throttle import LoginThrottle, VerificationThrottle
from accountflow.domain.tokens import TokenIssuer

# Module-level singleton - ConsoleMailSender is stateless
_mail_sender = ConsoleMailSender()


def get_session_manager(request: Request) -> SessionManager:
    """Get session manager from app state."""
    return request.app.state.sessions


def get_mail_sender() -> ConsoleMailSender:
    """Get console mail sender (singleton)."""
    return _mail_sender


def build_account_service(
    storage: AccountStorage, sessions: SessionManager, mail_sender: MailSender
) -> AccountService:
    """
    Create the account service from settings.

    Throttles hold locks, so the lifespan builds one service per application
    and every request shares it.
    """
    settings = get_settings()
    return AccountService(
        storage=storage,
        sessions=sessions,
        mail_sender=mail_sender,
        hasher=BcryptHasher(cost=settings.bcrypt_cost),
        state_machine=AccountStateMachine(
            verification_ttl=timedelta(hours=settings.verification_ttl_hours),
            reset_ttl=timedelta(minutes=settings.reset_ttl_minutes),
        ),
        login_throttle=LoginThrottle(
            delay_seconds=settings.login_delay_seconds,
            per_email_seconds=settings.login_throttle_seconds,
            capacity=settings.throttle_capacity,
        ),
        verification_throttle=VerificationThrottle(delay_seconds=settings.verification_delay_seconds),
        password_names=tuple(settings.password_names),
        issuer=TokenIssuer(length=settings.token_length),
    )


def get_account_service(request: Request) -> AccountService:
    """Get the shared account service from app state."""
    return request.app.state.account_service


def get_session(request: Request) -> Session | None:
    """
    Load the session named by the session cookie.

    Returns None when there is no cookie or the session is unknown.
    """
    session_id = request.cookies.get(get_settings().session_cookie_name)
    if not session_id:
        return None
    return get_session_manager(request).load_session(session_id)


def get_request_info(request: Request) -> dict[str, str]:
    """Client details included in notification emails."""
    return {
        "ip": request.client.host if request.client else "",
        "agent": request.headers.get("user-agent", ""),
    }
