"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock
- A recording mail sender
- An account service wired to in-memory storage and sessions, with
  throttling delays switched off and a cheap bcrypt cost
"""

import pytest

from accountflow.adapters.repository.memory import InMemoryAccountStorage
from accountflow.adapters.sessions.memory import InMemorySessionManager
from accountflow.domain.accounts import AccountService
from accountflow.domain.credentials import BcryptHasher
from accountflow.domain.throttle import LoginThrottle, VerificationThrottle
from tests.helpers import FakeClock, RecordingMailSender


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> InMemoryAccountStorage:
    return InMemoryAccountStorage()


@pytest.fixture
def sessions() -> InMemorySessionManager:
    return InMemorySessionManager()


@pytest.fixture
def mail() -> RecordingMailSender:
    return RecordingMailSender()


@pytest.fixture
def service(
    storage: InMemoryAccountStorage,
    sessions: InMemorySessionManager,
    mail: RecordingMailSender,
    clock: FakeClock,
) -> AccountService:
    """Account service with no throttling delays."""
    return AccountService(
        storage=storage,
        sessions=sessions,
        mail_sender=mail,
        hasher=BcryptHasher(cost=4),
        login_throttle=LoginThrottle(delay_seconds=0, per_email_seconds=0),
        verification_throttle=VerificationThrottle(delay_seconds=0),
        clock=clock,
    )
