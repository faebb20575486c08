"""
In-memory repository adapter - Implements AccountStorage protocol.

Suitable for development and tests. Every operation runs under one lock,
which makes insert_if_absent's existence check and insert a single critical
section. Accounts are copied on the way in and out so callers can only
change stored state through update().
"""

import threading
from copy import deepcopy

from accountflow.domain.account import Account
from accountflow.domain.exceptions import StorageError, TokenNotFound


def _holds(account: Account, token: str) -> bool:
    return any(
        held is not None and held.value == token
        for held in (account.verification_token, account.reset_token)
    )


class InMemoryAccountStorage:
    """
    Implements AccountStorage protocol with a dictionary keyed by id.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._lock = threading.Lock()

    def find_by_email(self, email: str) -> Account | None:
        with self._lock:
            return self._find(lambda account: account.email == email)

    def find_by_id(self, account_id: str) -> Account | None:
        with self._lock:
            account = self._accounts.get(account_id)
            return deepcopy(account) if account is not None else None

    def find_by_verification_token(self, token: str) -> Account | None:
        if not token:
            return None
        with self._lock:
            return self._find(
                lambda account: account.verification_token is not None
                and account.verification_token.value == token
            )

    def find_by_reset_token(self, token: str) -> Account | None:
        if not token:
            return None
        with self._lock:
            return self._find(
                lambda account: account.reset_token is not None and account.reset_token.value == token
            )

    def insert_if_absent(self, account: Account) -> Account | None:
        with self._lock:
            existing = self._find(lambda stored: stored.email == account.email)
            if existing is not None:
                return existing
            if account.id in self._accounts:
                raise StorageError(f"Account id {account.id} already in use")
            self._accounts[account.id] = deepcopy(account)
            return None

    def update(self, account: Account, consumed_token: str | None = None) -> None:
        with self._lock:
            if account.id not in self._accounts:
                raise StorageError(f"Account {account.id} does not exist")
            if consumed_token is not None and not _holds(self._accounts[account.id], consumed_token):
                raise TokenNotFound(consumed_token)
            for stored in self._accounts.values():
                if stored.id != account.id and stored.email == account.email:
                    raise StorageError(f"Email of account {account.id} collides with account {stored.id}")
            self._accounts[account.id] = deepcopy(account)

    def __len__(self) -> int:
        with self._lock:
            return len(self._accounts)

    def _find(self, predicate) -> Account | None:
        # Caller holds the lock
        for account in self._accounts.values():
            if predicate(account):
                return deepcopy(account)
        return None
