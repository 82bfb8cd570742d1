import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.orm import sessionmaker

from prize_ledger.db import Base, build_engine, get_db
from prize_ledger.main import app
from prize_ledger.schemas.campaign import CampaignCreate
from prize_ledger.schemas.prize_slot import PrizeSlotFields
from prize_ledger.services.campaign_service import create_campaign


def _enable_sqlite_fks(engine):
    @event.listens_for(engine, "connect")
    def _fk_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    _enable_sqlite_fks(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def make_campaign(db):
    """Create a campaign with slots given as (text, max_wins, amount) tuples."""

    def _make(slots, *, total_winners=100, total_amount=None, threshold=None, name="Spring Wheel", game="wheel"):
        payload = CampaignCreate(
            name=name,
            game=game,
            total_winners=total_winners,
            total_amount=total_amount,
            threshold=threshold,
            slots=[
                PrizeSlotFields(text=text, color="#ef4444", max_wins=max_wins, amount=amount, position=i)
                for i, (text, max_wins, amount) in enumerate(slots)
            ],
        )
        return create_campaign(db, payload)

    return _make
