import logging
import os
import sqlite3

logger = logging.getLogger(__name__)

DATABASE_FILE = os.path.join("instance", "mint_accounts.db")

# One row per storage key; the account mapping is stored under "keys"
STORAGE_TABLE = '''
CREATE TABLE IF NOT EXISTS storage (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
'''


def create_tables(conn: sqlite3.Connection) -> None:
    """Idempotent; safe on every connection."""
    conn.execute(STORAGE_TABLE)
    conn.commit()


def setup_database(path: str = DATABASE_FILE):
    """Create the key/value table the account store lives in."""

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    conn = sqlite3.connect(path)
    try:
        create_tables(conn)
    finally:
        conn.close()
    logger.info("Database ready at %s", path)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    setup_database()
