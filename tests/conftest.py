import pytest

from api import create_app
from models import storage


@pytest.fixture
def app(tmp_path):
    app = create_app("testing", STORAGE_DIR=str(tmp_path / "storage"))
    yield app
    storage.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sessions(app):
    return app.extensions["sessions"]


@pytest.fixture
def register(client):
    def _register(email="a@x.com", username="a", password="secret1"):
        resp = client.post("/auth/register", json={"email": email, "username": username, "password": password})
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()
    return _register


@pytest.fixture
def login(client):
    def _login(email="a@x.com", password="secret1"):
        resp = client.post("/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()
    return _login


@pytest.fixture
def user(register, login):
    """A registered and logged-in user: login response plus username."""
    info = register()
    return dict(login(), username=info["username"])


@pytest.fixture
def other_user(register, login):
    info = register(email="b@x.com", username="b", password="secret2")
    return dict(login(email="b@x.com", password="secret2"), username=info["username"])


def bearer(token):
    return {"Authorization": f"Bearer {token}"}
