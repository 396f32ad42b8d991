"""Account store for Mint: account name -> Base32 secret, kept in SQLite."""

from .db_manager import (
    account_exists,
    delete_account,
    get_account_secret,
    get_keys,
    save_account,
    set_keys,
)
from .setup_database import DATABASE_FILE, setup_database

__all__ = [
    "DATABASE_FILE",
    "account_exists",
    "delete_account",
    "get_account_secret",
    "get_keys",
    "save_account",
    "set_keys",
    "setup_database",
]
