"""
Example 01: Basic Query Execution

This example demonstrates stage resolution from DB_* variables and basic
queries through the Database service.
"""

import os
import tempfile
from pathlib import Path

from laju_db import Database, resolve_stage


def main():
    workdir = Path(tempfile.mkdtemp())
    os.environ["DB_CLIENT"] = "sqlite3"
    os.environ["DB_FILENAME"] = str(workdir / "data" / "dev.sqlite3")

    descriptor = resolve_stage("development")
    print("=== Stage Resolution ===\n")
    print(f"client:   {descriptor.client}")
    print(f"filename: {descriptor.filename}")
    print(f"pool:     min={descriptor.pool.min} max={descriptor.pool.max}\n")

    with Database.from_stage("development") as db:
        db.execute(
            """
            CREATE TABLE users (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                email TEXT NOT NULL,
                active INTEGER DEFAULT 1
            )
            """
        )
        db.execute(
            "INSERT INTO users (name, email) VALUES (:name, :email)",
            {"name": "Alice", "email": "alice@example.com"},
        )
        db.execute(
            "INSERT INTO users (name, email) VALUES (:name, :email)",
            {"name": "Bob", "email": "bob@example.com"},
        )
        db.execute(
            "INSERT INTO users (name, email, active) VALUES (:name, :email, 0)",
            {"name": "Charlie", "email": "charlie@example.com"},
        )

        print("=== Basic Query Execution ===\n")

        # fetch_one: Get a single row
        user = db.fetch_one("SELECT * FROM users WHERE id = :id", {"id": 1})
        print(f"fetch_one result: {user}")
        print(f"User name: {user['name']}\n")

        # fetch_all: Get multiple rows
        users = db.fetch_all("SELECT * FROM users WHERE active = 1")
        print(f"fetch_all result ({len(users)} rows):")
        for user in users:
            print(f"  - {user['name']} ({user['email']})")
        print()

        # fetch_scalar: Get a single value
        count = db.fetch_scalar("SELECT COUNT(*) FROM users")
        print(f"fetch_scalar result: {count} total users\n")

        print(f"journal_mode: {db.fetch_scalar('PRAGMA journal_mode')}")


if __name__ == "__main__":
    main()
