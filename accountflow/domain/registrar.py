"""
Atomic registration - the single serialization point for new accounts.

Two signups for the same email racing each other must never produce two
stored accounts. The existence check and the insert therefore happen inside
the storage adapter's insert_if_absent, which is atomic per email (a lock
for the in-memory store, INSERT ... ON CONFLICT for PostgreSQL).
"""

import logging
from dataclasses import dataclass, replace

from .account import Account, AccountState
from .ports import AccountStorage
from .state_machine import AccountStateMachine

logger = logging.getLogger(__name__)


@dataclass
class AtomicRegistrar:
    """Stores new accounts, returning the existing one on collision."""

    storage: AccountStorage
    state_machine: AccountStateMachine

    def register_or_fetch(self, candidate: Account) -> Account | None:
        """
        Store a candidate account unless its email already exists.

        Args:
            candidate: New account in CREATED with a fresh verification token

        Returns:
            The existing account (candidate discarded) or None if the
            candidate was stored

        Raises:
            InvalidAccountState: If the existing account's state is unknown
        """
        existing = self.storage.insert_if_absent(candidate)
        if existing is None:
            logger.info("Stored new account %s (%s)", candidate.id, candidate.email)
            return None

        # Validate before anyone branches on it
        self.state_machine.state_of(existing)
        return existing

    def refresh_unverified(self, existing: Account, candidate: Account) -> Account:
        """
        Let an unverified account retry signup.

        The candidate takes over the existing account's identifier, so the
        stored record gets the candidate's new verification token and
        credential hash in a single write.
        """
        if self.state_machine.state_of(existing) != AccountState.CREATED:
            raise ValueError(f"Account {existing.id} is already verified")
        refreshed = replace(candidate, id=existing.id, state=AccountState.CREATED)
        self.storage.update(refreshed)
        logger.info("Refreshed verification token for account %s (%s)", existing.id, existing.email)
        return refreshed
