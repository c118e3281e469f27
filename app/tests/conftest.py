import os
import sys
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

# Make the 'app' package importable when pytest is run from inside app/tests
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../../")))

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_app
from app.models import VocabList


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings(tmp_path):
    static_dir = tmp_path / "public"
    static_dir.mkdir()
    (static_dir / "index.html").write_text("<h1>LexiLearn</h1>", encoding="utf-8")
    (static_dir / "app.js").write_text("console.log('lexilearn');", encoding="utf-8")
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        secret_key="test-secret-key-for-lexilearn-tests",
        static_dir=static_dir,
    )


@pytest.fixture
def mailer():
    mock_mailer = MagicMock()
    mock_mailer.send_verification_code = AsyncMock(return_value=None)
    return mock_mailer


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def app(settings, mailer, clock):
    return create_app(settings, mailer=mailer, clock=clock)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(client, app):
    session = app.state.database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def vocab_lists(db):
    rows = [
        VocabList(name="CET-4", json_url="https://cdn.example.com/cet4.json", version="1.0"),
        VocabList(name="IELTS", json_url="https://cdn.example.com/ielts.json", version="2.1"),
    ]
    db.add_all(rows)
    db.commit()
    return [(row.id, row.name, row.json_url) for row in rows]


def last_sent_code(mailer) -> str:
    return mailer.send_verification_code.await_args.args[1]


def register_and_login(client, mailer, email="learner@example.com", password="secret1") -> str:
    assert client.post("/user/register", json={"email": email}).status_code == 200
    code = last_sent_code(mailer)
    assert client.post("/user/verify", json={"email": email, "code": code, "password": password}).status_code == 200
    response = client.post("/user/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return response.json()["token"]
