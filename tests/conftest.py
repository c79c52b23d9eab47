import pytest

from coastal_watch import create_app
from coastal_watch.database import db


class FakeResponse:
    def __init__(self, payload, status_code=200, reason="OK"):
        self._payload = payload
        self.status_code = status_code
        self.reason = reason
        self.text = str(payload)

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test",
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "SESSION_FILE_DIR": str(tmp_path / "sessions"),
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "OPENWEATHER_API_KEY": "owm-test",
        "GEMINI_API_KEY": "gemini-test",
        "MISTRAL_API_KEY": "mistral-test",
        "TWITTER_BEARER_TOKEN": "twitter-test",
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, email, role="citizen", name=None, password="secret123"):
    payload = {"email": email, "password": password, "role": role}
    if name:
        payload["name"] = name
    resp = client.post("/api/register", json=payload)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["user_id"]


@pytest.fixture
def citizen(app):
    c = app.test_client()
    c.user_id = register(c, "citizen@example.com", name="Asha")
    return c


@pytest.fixture
def analyst(app):
    c = app.test_client()
    c.user_id = register(c, "analyst@example.com", role="analyst", name="Ravi")
    return c


@pytest.fixture
def manager(app):
    c = app.test_client()
    c.user_id = register(c, "manager@example.com", role="disaster_manager", name="Meera")
    return c
