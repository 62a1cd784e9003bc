import sqlite3

import pytest

from mediahub.scopedtransaction import ScopedTransaction, TransactionError


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "media.db"
    with sqlite3.connect(path) as setup:
        setup.execute("CREATE TABLE items (name TEXT)")
    return path


def names(path):
    reader = sqlite3.connect(path)
    try:
        return [row[0] for row in reader.execute("SELECT name FROM items ORDER BY name")]
    finally:
        reader.close()


def test_statements_are_committed_on_exit(db_path):
    connection = sqlite3.connect(db_path)
    with ScopedTransaction(connection) as transaction:
        transaction.execute("INSERT INTO items VALUES ('a')")
        transaction.execute("INSERT INTO items VALUES ('b')")
        assert names(db_path) == []
    assert names(db_path) == ["a", "b"]
    assert not connection.in_transaction
    connection.close()


def test_execute_returns_cursor(db_path):
    connection = sqlite3.connect(db_path)
    with ScopedTransaction(connection) as transaction:
        transaction.execute("INSERT INTO items VALUES ('x')")
        rows = transaction.execute("SELECT name FROM items").fetchall()
    assert rows == [("x",)]
    connection.close()


def test_failed_statement_rolls_back_everything(db_path):
    connection = sqlite3.connect(db_path)
    with pytest.raises(TransactionError):
        with ScopedTransaction(connection) as transaction:
            transaction.execute("INSERT INTO items VALUES ('a')")
            transaction.execute("INSERT INTO missing_table VALUES (1)")
    assert transaction.errored
    assert names(db_path) == []
    connection.close()


def test_statements_after_failure_are_refused(db_path):
    connection = sqlite3.connect(db_path)
    transaction = ScopedTransaction(connection)
    with pytest.raises(TransactionError):
        transaction.execute("NOT SQL AT ALL")
    with pytest.raises(TransactionError, match="already errored"):
        transaction.execute("INSERT INTO items VALUES ('late')")
    with pytest.raises(TransactionError, match="already errored"):
        transaction.execute_file("anything.sql")
    connection.close()
    assert names(db_path) == []


def test_execute_file_splits_on_blank_lines(db_path, tmp_path):
    script = tmp_path / "schema.sql"
    script.write_text(
        "CREATE TABLE tags (tag TEXT);\n\n"
        "INSERT INTO items VALUES ('one');\n\n"
        "INSERT INTO items VALUES ('two');\n"
    )
    connection = sqlite3.connect(db_path)
    with ScopedTransaction(connection) as transaction:
        transaction.execute_file(script)
    assert names(db_path) == ["one", "two"]
    tables = connection.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    ).fetchall()
    assert ("tags",) in tables
    connection.close()


def test_failing_script_rolls_back(db_path, tmp_path):
    script = tmp_path / "broken.sql"
    script.write_text("INSERT INTO items VALUES ('one');\n\nBROKEN STATEMENT;\n")
    connection = sqlite3.connect(db_path)
    transaction = ScopedTransaction(connection)
    with pytest.raises(TransactionError):
        transaction.execute_file(script)
    assert transaction.errored
    connection.close()
    assert names(db_path) == []


def test_missing_script_does_not_poison_transaction(db_path, tmp_path):
    connection = sqlite3.connect(db_path)
    with ScopedTransaction(connection) as transaction:
        with pytest.raises(TransactionError, match="could not be opened"):
            transaction.execute_file(tmp_path / "absent.sql")
        assert not transaction.errored
        transaction.execute("INSERT INTO items VALUES ('kept')")
    assert names(db_path) == ["kept"]
    connection.close()


def test_foreign_exception_rolls_back(db_path):
    connection = sqlite3.connect(db_path)
    with pytest.raises(KeyError):
        with ScopedTransaction(connection) as transaction:
            transaction.execute("INSERT INTO items VALUES ('a')")
            raise KeyError("boom")
    with ScopedTransaction(connection) as check:
        counted = check.execute("SELECT count(*) FROM items").fetchone()
    assert counted == (0,)
    assert names(db_path) == []
    connection.close()