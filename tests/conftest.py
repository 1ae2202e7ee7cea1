from types import SimpleNamespace

import pytest
from flask_jwt_extended import create_access_token

from pollguard import create_app
from pollguard.config import Config
from pollguard.extensions import db, rate_limiter
from pollguard.services import identity


class TestingConfig(Config):
    __test__ = False

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SECRET_KEY = "test-secret"
    JWT_SECRET_KEY = "test-jwt-secret-that-is-long-enough-for-hs256"


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def clear_rate_limits():
    """Attempt counters are process-wide; start every test from zero."""
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def make_user(app):
    def _make_user(email="ada@example.com", name="Ada Lovelace", password="Password123"):
        with app.app_context():
            user = identity.sign_up(name, email, password)
            user_id = user.id
            db.session.commit()
            token = create_access_token(identity=str(user_id))
        return SimpleNamespace(
            id=user_id,
            email=email,
            password=password,
            token=token,
            headers={"Authorization": f"Bearer {token}"},
        )
    return _make_user


@pytest.fixture
def alice(make_user):
    return make_user("alice@example.com", "Alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob@example.com", "Bob")


@pytest.fixture
def create_poll(client):
    def _create_poll(owner, question="Coffee or tea?", options=("Coffee", "Tea")):
        resp = client.post(
            "/api/polls/",
            json={"question": question, "options": list(options)},
            headers=owner.headers,
        )
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()["poll"]
    return _create_poll
