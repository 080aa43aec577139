"""
Example 02: Transactions

This example demonstrates transactions on both services: the Database
transaction context manager and the native SQLite service's transaction().
"""

import tempfile
from pathlib import Path

from laju_db import Database, QueryExecutionError, SqliteService, resolve_stage
from laju_db.core.config import DatabaseSettings


def main():
    db_path = Path(tempfile.mkdtemp()) / "data" / "app.sqlite3"
    settings = DatabaseSettings(_env_file=None, client="sqlite3", filename=str(db_path))
    db = Database.from_stage("development", settings)

    db.execute(
        """
        CREATE TABLE users (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE
        )
        """
    )
    db.execute(
        """
        CREATE TABLE audit_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            action TEXT NOT NULL,
            timestamp DATETIME DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    print("=== Transaction Management ===\n")

    # Example 1: Successful transaction
    print("1. Successful transaction:")
    with db.transaction() as tx:
        tx.execute(
            "INSERT INTO users (name, email) VALUES (:name, :email)",
            {"name": "Alice", "email": "alice@example.com"},
        )
        tx.execute("INSERT INTO audit_log (action) VALUES (:action)", {"action": "user_created"})
        # Commits automatically on exit
    print(f"   Users after commit: {db.fetch_scalar('SELECT COUNT(*) FROM users')}\n")

    # Example 2: Transaction with rollback on error
    print("2. Transaction with error (automatic rollback):")
    try:
        with db.transaction() as tx:
            tx.execute(
                "INSERT INTO users (name, email) VALUES (:name, :email)",
                {"name": "Bob", "email": "bob@example.com"},
            )
            # This will fail due to duplicate email
            tx.execute(
                "INSERT INTO users (name, email) VALUES (:name, :email)",
                {"name": "Charlie", "email": "alice@example.com"},
            )
    except Exception as e:
        print(f"   Error occurred: {type(e).__name__}")
        print("   Transaction was rolled back automatically\n")
    print(f"   Users after rollback: {db.fetch_scalar('SELECT COUNT(*) FROM users')}\n")

    # Example 3: Errors outside a transaction are wrapped
    print("3. Query errors:")
    try:
        db.fetch_all("SELECT * FROM missing_table")
    except QueryExecutionError as e:
        print(f"   {e}\n")
    db.close()

    # Example 4: Native service transaction
    print("4. Native SQLite transaction:")
    native = SqliteService.open(resolve_stage("development", settings).filename)

    def create_user(conn):
        result = conn.run(
            "INSERT INTO users (name, email) VALUES (?, ?)", ["Dana", "dana@example.com"]
        )
        conn.run("INSERT INTO audit_log (action) VALUES (?)", ["user_created"])
        return result.last_insert_rowid

    user_id = native.transaction(create_user)
    print(f"   Created user id={user_id}")
    print(f"   {native.get('SELECT name FROM users WHERE id = ?', [user_id])}")
    native.close()


if __name__ == "__main__":
    main()
