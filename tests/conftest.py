# tests/conftest.py
# Put the project root (flat layout: app.py, tournament.py, ...) first on sys.path
import os, sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import pytest

from store import close_stores, get_store
from tournament import Player


@pytest.fixture
def store(tmp_path):
    path = str(tmp_path / "tournaments.db")
    yield get_store(path)
    close_stores(path)


@pytest.fixture
def make_players():
    def _make(n):
        return [Player(name=f"P{i + 1}", id=f"p{i + 1}", seed=i + 1) for i in range(n)]
    return _make


@pytest.fixture
def client(tmp_path):
    from app import app, _engines

    path = str(tmp_path / "app.db")
    app.config['TESTING'] = True
    app.config['DB_PATH'] = path
    with app.test_client() as c:
        yield c
    _engines.clear()
    close_stores(path)


@pytest.fixture
def admin(client):
    import config

    resp = client.post('/login', json={'username': config.ADMIN_USERNAME, 'password': config.ADMIN_PASSWORD})
    assert resp.status_code == 200
    return client
