"""
Shared fixtures for adversarial tests.

Provides account services with production bcrypt cost and real throttle
delays, for attacks whose defence depends on them.
"""

from collections.abc import Callable

import pytest

from accountflow.adapters.repository.memory import InMemoryAccountStorage
from accountflow.adapters.sessions.memory import InMemorySessionManager
from accountflow.domain.accounts import AccountService
from accountflow.domain.credentials import BcryptHasher
from accountflow.domain.throttle import LoginThrottle, VerificationThrottle
from tests.helpers import FakeClock, RecordingMailSender


@pytest.fixture
def production_cost_service(
    storage: InMemoryAccountStorage,
    sessions: InMemorySessionManager,
    mail: RecordingMailSender,
    clock: FakeClock,
) -> AccountService:
    """Account service hashing at the production cost factor, without delays."""
    return AccountService(
        storage=storage,
        sessions=sessions,
        mail_sender=mail,
        hasher=BcryptHasher(cost=10),
        login_throttle=LoginThrottle(delay_seconds=0, per_email_seconds=0),
        verification_throttle=VerificationThrottle(delay_seconds=0),
        clock=clock,
    )


@pytest.fixture
def make_throttled_service(
    storage: InMemoryAccountStorage,
    sessions: InMemorySessionManager,
    mail: RecordingMailSender,
) -> Callable[[float], AccountService]:
    """Factory for account services whose per-email throttle really sleeps."""

    def make(per_email_seconds: float) -> AccountService:
        return AccountService(
            storage=storage,
            sessions=sessions,
            mail_sender=mail,
            hasher=BcryptHasher(cost=4),
            login_throttle=LoginThrottle(delay_seconds=0, per_email_seconds=per_email_seconds),
            verification_throttle=VerificationThrottle(delay_seconds=0),
        )

    return make
