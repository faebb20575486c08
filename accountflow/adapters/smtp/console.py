"""
Console mail sender adapter - Implements MailSender protocol.

This module provides a console-based implementation of the domain's
mail sender port, logging notifications to stdout for demo purposes.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

# Context keys that carry a link the recipient has to follow
_LINK_KEYS = ("verification", "token")


class ConsoleMailSender:
    """
    Implements MailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints notifications to stdout.
    """

    def send(self, recipient: str, template_name: str, context: dict[str, Any]) -> None:
        """
        Log a notification to console (simulates email delivery).

        In production, this would be replaced with an SMTP adapter.
        Tokens are logged at INFO level so flows can be completed from
        docker-compose logs.

        Args:
            recipient: Recipient email address (normalized by domain layer)
            template_name: Notification template chosen by the workflow
            context: Template values
        """
        links = " ".join(f"{key}={context[key]}" for key in _LINK_KEYS if key in context)
        logger.info("[MAIL] To: %s Template: %s %s", recipient, template_name, links)
