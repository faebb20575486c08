"""Test doubles and helpers shared by the unit, adversarial and integration suites."""

from datetime import datetime, timedelta, timezone
from typing import Any

from accountflow.domain.account import Account
from accountflow.domain.accounts import AccountService

STRONG_PASSWORD = "Tr0ub4dor&3x"
OTHER_STRONG_PASSWORD = "c0rrect-h0rse-b@ttery"


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class RecordingMailSender:
    """MailSender that keeps every notification for inspection."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, dict[str, Any]]] = []

    def send(self, recipient: str, template_name: str, context: dict[str, Any]) -> None:
        self.sent.append((recipient, template_name, dict(context)))

    @property
    def last(self) -> tuple[str, str, dict[str, Any]]:
        return self.sent[-1]

    def templates(self) -> list[str]:
        return [template for _, template, _ in self.sent]


def verified_account(
    service: AccountService,
    mail: RecordingMailSender,
    email: str = "alice@example.com",
    password: str = STRONG_PASSWORD,
) -> Account:
    """Sign up and verify an account, returning the stored account."""
    service.signup(email, password, password)
    token = mail.last[2]["verification"]
    service.verify(token)
    return service.storage.find_by_email(email)
