"""
db_manager.py — account store: {account name: Base32 secret}.

The whole mapping is kept as one JSON object under the storage key "keys" and
is always read and written wholesale, the same shape a browser extension keeps
in its synced storage. Names are unique because they are the mapping's keys.
"""

import json
import logging
import os
import sqlite3
from typing import Dict, Optional

from .setup_database import DATABASE_FILE, create_tables, setup_database

logger = logging.getLogger(__name__)

KEYS_ENTRY = "keys"


def get_db_connection(path: str = DATABASE_FILE) -> sqlite3.Connection:
    """Open the database; the file and the storage table are created when missing."""
    if not os.path.exists(path):
        setup_database(path)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    create_tables(conn)
    return conn


def get_keys(path: str = DATABASE_FILE) -> Dict[str, str]:
    """Return the full account mapping ({} when nothing is stored)."""
    conn = get_db_connection(path)
    try:
        row = conn.execute("SELECT value FROM storage WHERE key = ?", (KEYS_ENTRY,)).fetchone()
    finally:
        conn.close()
    if row is None:
        return {}
    return json.loads(row["value"])


def set_keys(keys: Dict[str, str], path: str = DATABASE_FILE) -> None:
    """Replace the full account mapping."""
    conn = get_db_connection(path)
    try:
        conn.execute(
            """INSERT INTO storage (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
               ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP""",
            (KEYS_ENTRY, json.dumps(keys)),
        )
        conn.commit()
    finally:
        conn.close()


def save_account(name: str, secret: str, path: str = DATABASE_FILE) -> bool:
    """
    Add or overwrite one account.

    Both values are trimmed; if either ends up empty nothing is stored and
    False is returned.
    """
    name = (name or "").strip()
    secret = (secret or "").strip()
    if not name or not secret:
        return False

    keys = get_keys(path)
    keys[name] = secret
    set_keys(keys, path)
    logger.info("Saved account %r", name)
    return True


def get_account_secret(name: str, path: str = DATABASE_FILE) -> Optional[str]:
    return get_keys(path).get(name)


def account_exists(name: str, path: str = DATABASE_FILE) -> bool:
    return name in get_keys(path)


def delete_account(name: str, path: str = DATABASE_FILE) -> bool:
    """Remove an account; False if it was not there."""
    keys = get_keys(path)
    if name not in keys:
        return False
    del keys[name]
    set_keys(keys, path)
    logger.info("Deleted account %r", name)
    return True
