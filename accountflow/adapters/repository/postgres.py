"""
PostgreSQL repository adapter - Implements AccountStorage protocol.

This module provides the PostgreSQL implementation of the domain's
storage port using psycopg3 with raw SQL.

Concurrency Design - Atomic Registration:
-----------------------------------------
insert_if_absent relies on the UNIQUE constraint on accounts.email:

1. **INSERT ... ON CONFLICT (email) DO NOTHING**: the existence check and
   the insert are one statement. A concurrent insert for the same email
   blocks until the first transaction commits, then does nothing.

2. **Fetch after conflict**: when no row was inserted the committed winner
   is read back and returned to the caller.

3. **update()** is a single UPDATE of every mutable column, so a token is
   cleared in the same write as the state or credential change it authorized.
   A consumed token is also part of the WHERE clause, so two requests
   holding the same token cannot both succeed.

State values are parsed on every read. An unknown value raises
InvalidAccountState rather than being passed on to the workflows.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import psycopg
from psycopg_pool import ConnectionPool

from accountflow.domain.account import Account, AccountState, Token
from accountflow.domain.exceptions import StorageError, TokenNotFound

logger = logging.getLogger(__name__)

_COLUMNS = """
    id, email, credential_hash, state,
    verification_token, verification_created_at,
    reset_token, reset_created_at
"""


def _row_to_account(row: tuple) -> Account:
    (
        account_id,
        email,
        credential_hash,
        state,
        verification_token,
        verification_created_at,
        reset_token,
        reset_created_at,
    ) = row
    return Account(
        id=account_id,
        email=email,
        credential_hash=credential_hash,
        state=AccountState.parse(state),
        verification_token=(
            Token(verification_token, verification_created_at) if verification_token else None
        ),
        reset_token=Token(reset_token, reset_created_at) if reset_token else None,
    )


def _token_columns(token: Token | None) -> tuple:
    if token is None:
        return None, None
    return token.value, token.created_at


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except psycopg.Error as e:
        raise StorageError(f"Database error during {action}: {e}") from e


class PostgresAccountStorage:
    """
    Implements AccountStorage protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def find_by_email(self, email: str) -> Account | None:
        return self._find_one("email = %s", email)

    def find_by_id(self, account_id: str) -> Account | None:
        return self._find_one("id = %s", account_id)

    def find_by_verification_token(self, token: str) -> Account | None:
        if not token:
            return None
        return self._find_one("verification_token = %s", token)

    def find_by_reset_token(self, token: str) -> Account | None:
        if not token:
            return None
        return self._find_one("reset_token = %s", token)

    def insert_if_absent(self, account: Account) -> Account | None:
        """
        Atomically store a new account unless its email is taken.

        Args:
            account: Candidate account with a normalized email

        Returns:
            None if inserted, otherwise the account that already owns the email
        """
        insert_sql = f"""
            INSERT INTO accounts ({_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (email) DO NOTHING
        """
        select_sql = f"SELECT {_COLUMNS} FROM accounts WHERE email = %s"

        with _storage_errors("insert"), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                insert_sql,
                (
                    account.id,
                    account.email,
                    account.credential_hash,
                    AccountState.parse(account.state).value,
                    *_token_columns(account.verification_token),
                    *_token_columns(account.reset_token),
                ),
            )
            if cursor.rowcount == 1:
                conn.commit()
                return None

            # Lost the race (or the email was already registered)
            cursor.execute(select_sql, (account.email,))
            row = cursor.fetchone()
            conn.commit()

        if row is None:
            raise StorageError(f"Insert of {account.email} conflicted but no account was found")
        return _row_to_account(row)

    def update(self, account: Account, consumed_token: str | None = None) -> None:
        """
        Write every mutable column of the account in one statement.

        When consumed_token is given the row must still hold it; the check
        and the write are the same UPDATE, so only one of several concurrent
        writers consuming the same token matches a row.
        """
        sql = """
            UPDATE accounts
            SET email = %s,
                credential_hash = %s,
                state = %s,
                verification_token = %s,
                verification_created_at = %s,
                reset_token = %s,
                reset_created_at = %s,
                updated_at = NOW()
            WHERE id = %s
        """
        params = [
            account.email,
            account.credential_hash,
            AccountState.parse(account.state).value,
            *_token_columns(account.verification_token),
            *_token_columns(account.reset_token),
            account.id,
        ]
        if consumed_token is not None:
            sql += " AND (verification_token = %s OR reset_token = %s)"
            params += [consumed_token, consumed_token]

        with _storage_errors("update"), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            updated = cursor.rowcount
            conn.commit()

        if updated == 1:
            return
        if consumed_token is not None and self.find_by_id(account.id) is not None:
            raise TokenNotFound(consumed_token)
        raise StorageError(f"Account {account.id} does not exist")

    def _find_one(self, condition: str, value: str) -> Account | None:
        sql = f"SELECT {_COLUMNS} FROM accounts WHERE {condition}"
        with _storage_errors("lookup"), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (value,))
            row = cursor.fetchone()
        return _row_to_account(row) if row is not None else None


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: accountflow/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
