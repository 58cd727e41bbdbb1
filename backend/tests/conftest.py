import os

# module-level engine/settings must not touch the repo's data/ directory
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BACKGROUND_JOBS_ENABLED", "false")
os.environ.setdefault("SLOT_MUTEX_WAIT_SECONDS", "0.3")

from datetime import datetime

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from turfbook.database import build_engine, get_db
from turfbook.main import app
from turfbook.models import Base, Turfs
from turfbook.redis_client import get_redis
from turfbook.services.slots import BookingConfig, SlotKey

T0 = datetime(2025, 7, 1, 0, 0, 0)


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'turfbook.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def redis():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def config():
    return BookingConfig(
        lock_ttl_minutes=10,
        mutex_timeout_seconds=5,
        mutex_wait_seconds=2,
        default_cancellation_hours=1,
        reminder_window_minutes=120,
    )


@pytest.fixture
def turf(db):
    turf = Turfs(id="t1", vendor_id="v1", title="Green Arena", address="MG Road")
    db.add(turf)
    db.commit()
    return turf


@pytest.fixture
def key(turf):
    return SlotKey.build("v1", "t1", "Football", "2025-07-01", "06:00-07:00")


@pytest.fixture
def client(session_factory, redis, turf):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_redis] = lambda: redis
    yield TestClient(app)
    app.dependency_overrides.clear()
