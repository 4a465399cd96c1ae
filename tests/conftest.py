"""Shared fixtures: an app on in-memory SQLite with two registered users."""
from contextlib import contextmanager

import pytest
from flask import session
from werkzeug.security import generate_password_hash

from app import create_app
from models import db, User


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SECRET_KEY': 'test-secret',
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def users(app):
    """Ids of two users: (alice, bob)."""
    with app.app_context():
        alice = User(name='Alice', email='alice@example.com', password_hash=generate_password_hash('alice-pw'))
        bob = User(name='Bob', email='bob@example.com', password_hash=generate_password_hash('bob-pw'))
        db.session.add_all([alice, bob])
        db.session.commit()
        return alice.id, bob.id


@pytest.fixture
def as_user(app):
    """Run code inside a request whose session belongs to ``user_id``."""
    @contextmanager
    def _as_user(user_id):
        with app.test_request_context():
            if user_id:
                session['user_id'] = user_id
            yield
    return _as_user


@pytest.fixture
def login(client):
    def _login(email, password):
        resp = client.post('/login', json={'email': email, 'password': password})
        assert resp.status_code == 200
        return resp
    return _login
