"""Shared fixtures for the notification engine tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

os.environ.setdefault("DATABASE_URL", f"sqlite:///{Path(__file__).parent / 'test.db'}")
os.environ.setdefault("SECRET_KEY", "test-secret")

from app.config import reset_settings_cache
from app.domain.entities import ROLE_SUPER_ADMIN, ROLE_TEACHER, Identity
from app.infrastructure.database import build_engine, build_session_factory, initialize_database
from app.infrastructure.push import PushDeliveryPipeline

from support import FakePushGateway, add_user


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'notifications.db'}")
    initialize_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def gateway() -> FakePushGateway:
    return FakePushGateway()


@pytest.fixture
def pipeline(gateway, session_factory) -> PushDeliveryPipeline:
    return PushDeliveryPipeline(
        gateway,
        session_factory,
        workers=2,
        max_attempts=3,
        backoff_seconds=0,
        backoff_max_seconds=0,
    )


@pytest.fixture
def teacher(session) -> Identity:
    add_user(session, 900, role=ROLE_TEACHER, first_name="Ada")
    return Identity(user_id=900, role=ROLE_TEACHER, department_id=1, name="Ada Teacher")


@pytest.fixture
def hod(session) -> Identity:
    add_user(session, 901, role=ROLE_SUPER_ADMIN, first_name="Grace")
    return Identity(user_id=901, role=ROLE_SUPER_ADMIN, department_id=1, name="Grace HoD")
