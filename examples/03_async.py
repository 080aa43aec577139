"""
Example 03: Async Support

This example demonstrates AsyncDatabase backed by aiosqlite.
"""

import asyncio
import tempfile
from pathlib import Path

from laju_db import AsyncDatabase
from laju_db.core.config import DatabaseSettings


async def main():
    db_path = Path(tempfile.mkdtemp()) / "async.sqlite3"
    settings = DatabaseSettings(_env_file=None, client="sqlite3", filename=str(db_path))

    print("=== Async Support ===\n")

    async with await AsyncDatabase.from_stage("development", settings) as db:
        await db.execute(
            """
            CREATE TABLE products (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                price REAL NOT NULL,
                stock INTEGER DEFAULT 0
            )
            """
        )

        async with db.transaction() as tx:
            for name, price, stock in [("Laptop", 999.99, 10), ("Mouse", 29.99, 50)]:
                await tx.execute(
                    "INSERT INTO products (name, price, stock) VALUES (:name, :price, :stock)",
                    {"name": name, "price": price, "stock": stock},
                )

        products = await db.fetch_all("SELECT * FROM products ORDER BY price DESC")
        print(f"Found {len(products)} products:")
        for product in products:
            print(f"  - {product['name']}: ${product['price']:.2f} (stock: {product['stock']})")

        total = await db.fetch_scalar("SELECT SUM(stock) FROM products")
        print(f"\nTotal stock: {total}")
        print(f"journal_mode: {await db.fetch_scalar('PRAGMA journal_mode')}")


if __name__ == "__main__":
    asyncio.run(main())
