import os
import tempfile
from datetime import datetime, timedelta, timezone

_DB_DIR = tempfile.mkdtemp(prefix="shortener-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ADMIN_SECRET_KEY"] = "admin-secret"
os.environ["EMAIL_USER"] = ""
os.environ["EMAIL_PASS"] = ""
os.environ["PUBLIC_BASE_URL"] = "http://sho.rt"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from shortener.database import Base, engine, init_db, session_scope  # noqa: E402
from shortener.main import app  # noqa: E402
from shortener.models.schema.link import LinkEntry  # noqa: E402
from shortener.services.tokens import create_access_token  # noqa: E402
from shortener.services.users import hash_password, user_store  # noqa: E402

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def _token_for(name: str, email: str, role: str) -> str:
    entry = user_store.create_user(name, email, hash_password("secret123"), role)
    return create_access_token(entry.id, entry.email, entry.role)


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {_token_for('Ada', 'ada@example.com', 'admin')}"}


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {_token_for('Bob', 'bob@example.com', 'user')}"}


@pytest.fixture
def seed_links():
    """Insert links oldest first; item i is created i minutes after BASE_TIME."""

    def _seed(rows):
        ids = []
        with session_scope() as session:
            for index, row in enumerate(rows):
                created_at = BASE_TIME + timedelta(minutes=index)
                entry = LinkEntry(
                    slug=row["slug"],
                    title=row.get("title"),
                    destination=row.get("destination", f"https://example.com/{row['slug']}"),
                    status=row.get("status", "active"),
                    clicks=row.get("clicks", 0),
                    max_clicks=row.get("max_clicks", 0),
                    schedule_start=row.get("schedule_start"),
                    expires_at=row.get("expires_at"),
                    created_at=created_at,
                    updated_at=created_at,
                )
                session.add(entry)
                session.flush()
                ids.append(entry.id)
        return ids

    return _seed
