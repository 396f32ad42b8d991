import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# RFC 6238 appendix B SHA-1 seed "12345678901234567890" in Base32
RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


@pytest.fixture()
def db_path(tmp_path):
    return str(tmp_path / "accounts.db")


@pytest.fixture()
def app(db_path):
    from mint_backend.app import create_app

    app = create_app({"TESTING": True, "DATABASE_FILE": db_path})
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()
