"""Database repository for scheduler accounts.

Every operation is a call to a stored function or procedure owned by the
database; this module only marshals arguments and maps rows and errors.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

import psycopg
from psycopg import sql
from psycopg.errors import UniqueViolation
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from .domain.account import Role
from .domain.contracts import JoinInput, ProfileUpdateInput
from .domain.errors import DuplicateUsername, MissingResultError, StorageError

# Per-role store bindings. Supporting a new role means adding a row here.
CREATE_FUNCTIONS: dict[Role, str] = {
    Role.MANAGER: "new_manager",
    Role.WORKER: "new_worker",
}
ID_COLUMNS: dict[Role, str] = {
    Role.MANAGER: "manager_id",
    Role.WORKER: "worker_id",
}


class AccountRepository:
    """Postgres-backed account persistence built on stored functions."""

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    @contextmanager
    def _cursor(self) -> Iterator[psycopg.Cursor[dict[str, Any]]]:
        """Yield a dict-row cursor, committing on success and mapping driver errors."""
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    yield cur
                conn.commit()
        except UniqueViolation as exc:
            raise DuplicateUsername(str(exc)) from exc
        except psycopg.Error as exc:
            raise StorageError(str(exc)) from exc

    def create_account(self, payload: JoinInput) -> Any:
        """Create a manager or worker account and return its identifier.

        Raises
        ------
        DuplicateUsername
            The username is already taken within the role.
        MissingResultError
            The store completed without returning an identifier.
        StorageError
            Any other database failure.
        """
        query = sql.SQL("SELECT * FROM {}(%s, %s, %s, %s, %s)").format(
            sql.Identifier(CREATE_FUNCTIONS[payload.role])
        )
        with self._cursor() as cur:
            cur.execute(
                query,
                (
                    payload.first_name,
                    payload.last_name,
                    payload.email,
                    payload.username,
                    payload.password_hash,
                ),
            )
            row = cur.fetchone()

        account_id = row.get(ID_COLUMNS[payload.role]) if row else None
        if account_id is None:
            raise MissingResultError(f"{CREATE_FUNCTIONS[payload.role]} returned no account id")
        return account_id

    def find_account(self, username: str, password_hash: str, role: Role) -> Any | None:
        """Return the account id matching the credential pair, or ``None``.

        A wrong password and an unknown username are indistinguishable here.
        """
        with self._cursor() as cur:
            cur.execute(
                "SELECT * FROM check_user_exists(%s, %s, %s)",
                (username, password_hash, int(role)),
            )
            rows = cur.fetchall()
        if len(rows) != 1:
            return None
        return rows[0].get(ID_COLUMNS[role])

    def list_workspaces(self, account_id: Any, role: Role) -> list[Any]:
        """Return the workspace ids the account belongs to, in store order."""
        with self._cursor() as cur:
            cur.execute(
                "SELECT * FROM get_user_workspaces(%s, %s)",
                (account_id, int(role)),
            )
            rows = cur.fetchall()
        return [row["workspace_id"] for row in rows]

    def read_profile(self, role: Role, account_id: Any) -> dict[str, Any]:
        with self._cursor() as cur:
            cur.execute(
                "SELECT * FROM get_profile_information(%s, %s)",
                (int(role), account_id),
            )
            row = cur.fetchone()
        if row is None:
            raise MissingResultError(f"no profile for {role.name.lower()} {account_id}")
        return dict(row)

    def update_profile(self, account_id: Any, role: Role, payload: ProfileUpdateInput) -> None:
        """Overwrite every profile field of the account in one procedure call."""
        with self._cursor() as cur:
            cur.execute(
                "CALL update_user_profile(%s, %s, %s, %s, %s, %s, %s, %s)",
                (
                    account_id,
                    int(role),
                    payload.first_name,
                    payload.last_name,
                    payload.email,
                    payload.username,
                    payload.password_hash,
                    payload.availability,
                ),
            )
