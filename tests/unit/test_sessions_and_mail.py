"""Unit tests for the in-memory session manager and the console mail sender."""

import logging

import pytest

from accountflow.adapters.sessions.memory import InMemorySessionManager
from accountflow.adapters.smtp.console import ConsoleMailSender


class TestInMemorySessionManager:
    """Tests for InMemorySessionManager."""

    def test_start_and_load(self, sessions: InMemorySessionManager) -> None:
        session = sessions.start_session()

        assert sessions.load_session(session.id) is session
        assert session.account_id is None

    def test_session_ids_are_unique(self, sessions: InMemorySessionManager) -> None:
        ids = {sessions.start_session().id for _ in range(100)}

        assert len(ids) == 100

    def test_attach_and_detach(self, sessions: InMemorySessionManager) -> None:
        session = sessions.start_session()

        session.attach("a1")
        assert sessions.sessions_for("a1") == [session]

        session.detach()
        assert sessions.sessions_for("a1") == []

    def test_destroy_session(self, sessions: InMemorySessionManager) -> None:
        session = sessions.start_session()

        sessions.destroy_session(session.id)

        assert sessions.load_session(session.id) is None

    def test_load_unknown_session(self, sessions: InMemorySessionManager) -> None:
        assert sessions.load_session("missing") is None

    def test_invalidate_all_only_touches_one_account(self, sessions: InMemorySessionManager) -> None:
        first = sessions.start_session()
        second = sessions.start_session()
        other = sessions.start_session()
        first.attach("a1")
        second.attach("a1")
        other.attach("a2")

        sessions.invalidate_all_sessions_for("a1")

        assert first.account_id is None
        assert second.account_id is None
        assert other.account_id == "a2"


class TestConsoleMailSender:
    """Tests for ConsoleMailSender."""

    def test_logs_recipient_template_and_link(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="accountflow.adapters.smtp.console"):
            ConsoleMailSender().send(
                "alice@example.com", "verification_new", {"verification": "abc123", "ip": "10.0.0.1"}
            )

        assert "[MAIL] To: alice@example.com" in caplog.text
        assert "Template: verification_new" in caplog.text
        assert "verification=abc123" in caplog.text
        assert "10.0.0.1" not in caplog.text

    def test_logs_reset_token(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="accountflow.adapters.smtp.console"):
            ConsoleMailSender().send("alice@example.com", "reset_existing", {"token": "xyz"})

        assert "token=xyz" in caplog.text

    def test_informational_mail_has_no_link(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="accountflow.adapters.smtp.console"):
            ConsoleMailSender().send("nobody@example.com", "reset_unknown", {"email": "nobody@example.com"})

        assert "Template: reset_unknown" in caplog.text
        assert "token=" not in caplog.text
