import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PUSH_PROVIDER", "log")

import pytest

from geowork.config import settings
from geowork.db import init_db, make_engine, make_session_factory
from geowork.services.notifications import Notifier
from geowork.services.orchestrator import ScheduleOrchestrator
from geowork.store.sql_provider import SqlSessionStore

from .helpers import FakeClock, RecordingPushProvider, at


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return SqlSessionStore(session_factory)


@pytest.fixture
def push():
    return RecordingPushProvider()


@pytest.fixture
def notifier(push):
    return Notifier(push, enabled=True)


@pytest.fixture
def clock():
    return FakeClock(at(8, 50))


@pytest.fixture
def config():
    return settings.model_copy()


@pytest.fixture
def orchestrator(store, notifier, clock, config):
    return ScheduleOrchestrator(store, notifier, config=config, clock=clock)
