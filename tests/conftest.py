import os

import pytest

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')

from cali.core.config import Settings  # noqa: E402
from cali.database import build_engine, build_session_factory, init_schema  # noqa: E402
from cali.repositories.user_repo import UserRepository  # noqa: E402

OTHER_USER_ID = 2


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url='sqlite:///:memory:',
        static_dir=str(tmp_path / 'static'),
        log_level='WARNING',
    )


@pytest.fixture
def engine(settings):
    engine = build_engine(settings)
    init_schema(engine, settings)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def appointment_db(engine):
    db = build_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def other_user(appointment_db):
    return UserRepository(appointment_db).ensure(OTHER_USER_ID, 'other')
