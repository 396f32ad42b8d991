import os

from dotenv import load_dotenv

from mint_database import DATABASE_FILE

# Read .env before any Config class attribute is evaluated
load_dotenv()


class Config:
    SECRET_KEY = os.environ.get("MINT_SECRET_KEY", "mint_dev_secret_key")

    # SQLite file holding the account mapping
    DATABASE_FILE = os.environ.get("MINT_DATABASE_FILE", DATABASE_FILE)

    LOG_LEVEL = os.environ.get("MINT_LOG_LEVEL", "INFO")

    # Comma-separated; "*" lets the extension popup call from its own origin
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get("MINT_CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]
