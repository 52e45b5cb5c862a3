"""
Pytest configuration and fixtures for Boggle service tests.
"""
import os
import sys
from datetime import datetime, timedelta

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Set testing environment before importing app
os.environ['FLASK_ENV'] = 'testing'

from boggle.app import create_app
from boggle.auth import hash_email
from boggle.dictionary import WordSetDictionary
from boggle.models import db, User

# A B C D
# E F G H
# I J K L
# M N O P
TEST_BOARD = list('ABCDEFGHIJKLMNOP')

TEST_WORDS = [
    'ABC', 'BCD', 'ABF', 'AEI', 'FGH', 'KLP',
    'ABCDHG', 'EFGHLK', 'IJKLPO', 'MNOPLK',
    'ACE',   # in the dictionary, not on the board
]

ALICE = 'alice@example.com'
BOB = 'bob@example.com'
CAROL = 'carol@example.com'


class FakeClock:
    """Stands in for wall time so timers expire without sleeping."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(scope='function')
def app(clock):
    """Create application for testing, one in-memory database per test."""
    app = create_app('testing')
    app.games.dictionary = WordSetDictionary(TEST_WORDS)
    app.games.board_factory = lambda: list(TEST_BOARD)
    app.games.clock = clock
    app.tournaments.clock = clock
    app.janitor.clock = clock
    yield app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def app_ctx(app):
    """Application context for tests that drive the engines directly."""
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture
def games(app_ctx):
    return app_ctx.games


@pytest.fixture
def tournaments(app_ctx):
    return app_ctx.tournaments


@pytest.fixture
def janitor(app_ctx):
    return app_ctx.janitor


@pytest.fixture
def mock_notifier(app, mocker):
    """Replace the notifier on both engines with a mock."""
    notifier = mocker.MagicMock()
    app.games.notifier = notifier
    app.tournaments.notifier = notifier
    return notifier


@pytest.fixture
def users(app_ctx):
    """Three users, created in order alice, bob, carol."""
    created = {}
    for name, email in (('alice', ALICE), ('bob', BOB), ('carol', CAROL)):
        user = User(id=hash_email(email), email=email, alias=name.capitalize())
        db.session.add(user)
        created[name] = user.id
    db.session.commit()
    return created


def identity(email: str) -> dict:
    return {'CF-Access-Authenticated-User-Email': email}


@pytest.fixture
def alice_headers():
    return identity(ALICE)


@pytest.fixture
def bob_headers():
    return identity(BOB)


@pytest.fixture
def carol_headers():
    return identity(CAROL)
