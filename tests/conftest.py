from types import SimpleNamespace

import pytest

from api.jwt_authorize import generate_token
from model.listing import Listing
from model.user import User
from server import create_app, db
from settings import TestingConfig


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def socketio(app):
    return app.extensions["socketio"]


@pytest.fixture
def store(app):
    return app.extensions["message_store"]


@pytest.fixture
def registry(app):
    return app.extensions["connection_registry"]


@pytest.fixture
def aggregator(app):
    return app.extensions["conversation_aggregator"]


@pytest.fixture
def users(app):
    """A (buyer), B (seller), C (third party) and two listings owned by B."""
    alice = User(name="Alice", email="alice@example.com", avatar_url="/a.png")
    bob = User(name="Bob", email="bob@example.com")
    carol = User(name="Carol", email="carol@example.com")
    db.session.add_all([alice, bob, carol])
    db.session.flush()
    l1 = Listing(user_id=bob.id, make="Volvo", model="XC60")
    l2 = Listing(user_id=bob.id, make="Skoda", model="Octavia")
    db.session.add_all([l1, l2])
    db.session.commit()
    return SimpleNamespace(a=alice.id, b=bob.id, c=carol.id, l1=l1.id, l2=l2.id)


@pytest.fixture
def token_for(app):
    def make(user_id):
        user = db.session.get(User, user_id)
        return generate_token(user.id, user.email)
    return make


@pytest.fixture
def auth_headers(token_for):
    def make(user_id):
        return {"Authorization": f"Bearer {token_for(user_id)}"}
    return make


@pytest.fixture
def live_client(app, socketio, token_for):
    clients = []

    def connect(user_id=None, token=None):
        if token is None and user_id is not None:
            token = token_for(user_id)
        test_client = socketio.test_client(app, auth={"token": token} if token else None)
        clients.append(test_client)
        return test_client

    yield connect
    for test_client in clients:
        if test_client.is_connected():
            test_client.disconnect()


@pytest.fixture
def received():
    def events(test_client, name):
        return [item["args"][0] for item in test_client.get_received() if item["name"] == name]
    return events
