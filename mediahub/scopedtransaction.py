"""A database transaction that commits on success and rolls back on the first failure."""

from __future__ import annotations

import logging
import os
import sqlite3
from pathlib import Path
from types import TracebackType

_log = logging.getLogger(__name__)

_STATEMENT_SEPARATOR = ";\n\n"


class TransactionError(Exception):
    """A statement failed, was skipped, or its script could not be read."""


class ScopedTransaction:
    """Runs statements in one transaction on a :mod:`sqlite3` connection.

    The transaction begins on construction. The first failing statement rolls it
    back and every later statement is refused. Leaving the ``with`` block commits
    unless the transaction failed or the block raised, in which case it is rolled back.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection
        self._errored = False
        if not connection.in_transaction:
            connection.execute("BEGIN")

    @property
    def errored(self) -> bool:
        return self._errored

    def __enter__(self) -> "ScopedTransaction":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if self._errored:
            return False
        if exc_type is None:
            self._connection.commit()
        else:
            self._connection.rollback()
            self._errored = True
        return False

    def _fail(self, message: str, cause: BaseException) -> TransactionError:
        _log.debug(message)
        self._connection.rollback()
        self._errored = True
        return TransactionError(message)

    def _run(self, query: str, origin: str) -> sqlite3.Cursor:
        try:
            return self._connection.execute(query)
        except (sqlite3.Error, sqlite3.Warning) as exc:
            raise self._fail(f"{origin} failed to execute {query!r}: {exc}", exc) from exc

    def _ensure_usable(self, what: str) -> None:
        if self._errored:
            raise TransactionError(f"{what} skipped, transaction already errored")

    def execute(self, query: str) -> sqlite3.Cursor:
        """Execute one statement and return its cursor."""
        self._ensure_usable(repr(query))
        return self._run(query, "query")

    def execute_file(self, file_name: str | os.PathLike[str]) -> None:
        """Execute the statements of a script, separated by a semicolon and a blank line."""
        self._ensure_usable(str(file_name))
        try:
            contents = Path(file_name).read_text(encoding="utf-8")
        except OSError as exc:
            raise TransactionError(f"{file_name} could not be opened for exec") from exc
        for query in (part for part in contents.split(_STATEMENT_SEPARATOR) if part):
            self._run(query, str(file_name))