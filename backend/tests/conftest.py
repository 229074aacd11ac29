"""
Pytest fixtures for cashbook tests.

Provides an in-memory collection store, a controllable clock, a wired engine,
and a Flask app backed by an in-memory SQLite database.
"""

from datetime import datetime, timedelta

import pytest

from cashbook import create_app
from cashbook.engine import LedgerEngine, get_engine
from cashbook.extensions import db
from cashbook.storage import MemoryCollectionStore


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 1, 15, 12, 0, 0))


@pytest.fixture
def store():
    return MemoryCollectionStore()


@pytest.fixture
def engine(store, clock):
    return LedgerEngine(store, clock=clock)


@pytest.fixture
def inventory(engine):
    return engine.inventory


@pytest.fixture
def ledger(engine):
    return engine.ledger


@pytest.fixture
def sales(engine):
    return engine.sales


@pytest.fixture
def debts(engine):
    return engine.debts


@pytest.fixture
def bills(engine):
    return engine.bills


@pytest.fixture
def shirt(inventory):
    """Variant product: S=5, M=3."""
    return inventory.create_product(
        name="Shirt",
        price=20,
        category="Ropa",
        has_variants=True,
        variants=[{"name": "S", "quantity": 5}, {"name": "M", "quantity": 3}],
    )


@pytest.fixture
def mug(inventory):
    """Standalone product with 12 units."""
    return inventory.create_product(name="Mug", price=7.5, category="Hogar", standalone_quantity=12)


@pytest.fixture
def app():
    """Application over a fresh in-memory database."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_engine(app):
    return get_engine(app)


@pytest.fixture
def runner(app):
    return app.test_cli_runner()
