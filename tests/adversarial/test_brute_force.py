"""
Adversarial tests for online password guessing.

Verifies that login attempts against one email are serialized behind the
per-email throttle, that attempts against different emails are not, and
that an attacker cycling through emails cannot grow the lock cache.
"""

import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

import pytest

from accountflow.domain.accounts import AccountService
from accountflow.domain.exceptions import InvalidLogin
from accountflow.domain.throttle import LoginThrottle
from tests.helpers import OTHER_STRONG_PASSWORD, RecordingMailSender, verified_account

pytestmark = pytest.mark.adversarial

EMAIL = "victim@example.com"
DELAY = 0.1


def guess(service: AccountService, email: str) -> None:
    with pytest.raises(InvalidLogin):
        service.login(email, OTHER_STRONG_PASSWORD)


class TestBruteForce:
    """Parallel guessing gains nothing against a single account."""

    ATTEMPTS = 5

    def test_parallel_guesses_for_one_email_are_serialized(
        self, make_throttled_service: Callable[[float], AccountService], mail: RecordingMailSender
    ) -> None:
        service = make_throttled_service(DELAY)
        verified_account(service, mail, EMAIL)

        start = time.perf_counter()
        with ThreadPoolExecutor(max_workers=self.ATTEMPTS) as executor:
            list(executor.map(lambda _: guess(service, EMAIL), range(self.ATTEMPTS)))
        elapsed = time.perf_counter() - start

        assert elapsed >= self.ATTEMPTS * DELAY * 0.95

    def test_guesses_for_different_emails_run_in_parallel(
        self, make_throttled_service: Callable[[float], AccountService], mail: RecordingMailSender
    ) -> None:
        service = make_throttled_service(DELAY)
        emails = [f"user{i}@example.com" for i in range(self.ATTEMPTS)]
        for email in emails:
            verified_account(service, mail, email)

        start = time.perf_counter()
        with ThreadPoolExecutor(max_workers=self.ATTEMPTS) as executor:
            list(executor.map(lambda email: guess(service, email), emails))
        elapsed = time.perf_counter() - start

        assert elapsed < self.ATTEMPTS * DELAY

    def test_every_guess_pays_the_fixed_delay(self) -> None:
        sleeps: list[float] = []
        throttle = LoginThrottle(delay_seconds=1.0, per_email_seconds=0, sleep=sleeps.append)

        for i in range(3):
            with throttle.admit(f"user{i}@example.com"):
                pass

        assert sleeps == [1.0, 1.0, 1.0]

    def test_email_cycling_cannot_exhaust_memory(self) -> None:
        throttle = LoginThrottle(delay_seconds=0, per_email_seconds=0, capacity=50)

        for i in range(1000):
            with throttle.admit(f"user{i}@example.com"):
                pass

        assert len(throttle._locks) <= 50
