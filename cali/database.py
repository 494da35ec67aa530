import logging

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from cali.core.config import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()

# INTEGER primary keys are signed 64-bit in SQLite
MAX_ROW_ID = 2**63 - 1


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(settings: Settings) -> Engine:
    """Create the engine and its bounded connection pool."""
    engine_kwargs: dict = {"echo": settings.db_echo}

    if settings.is_sqlite:
        engine_kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": settings.db_busy_timeout,
        }

    if settings.is_in_memory_sqlite:
        # every session has to see the same in-memory database
        engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=settings.db_pool_recycle,
            pool_timeout=settings.db_pool_timeout,
            pool_pre_ping=True,
        )

    engine = create_engine(settings.database_url, **engine_kwargs)

    if settings.is_sqlite:
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    logger.info(
        "Database engine created: pool_size=%s, max_overflow=%s, recycle=%ss",
        settings.db_pool_size,
        settings.db_max_overflow,
        settings.db_pool_recycle,
    )
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )


def ensure_appointment_schema(engine: Engine) -> None:
    """Bring an appointments table made by an older build up to date."""
    inspector = inspect(engine)

    if 'appointments' not in inspector.get_table_names():
        return

    existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
    migration_steps = [
        ('description', 'ALTER TABLE appointments ADD COLUMN description TEXT'),
        ('updated_at', 'ALTER TABLE appointments ADD COLUMN updated_at TIMESTAMP'),
    ]

    with engine.begin() as connection:
        for column_name, statement in migration_steps:
            if column_name not in existing_columns:
                logger.info('Adding missing column appointments.%s', column_name)
                connection.execute(text(statement))
        connection.execute(
            text('CREATE INDEX IF NOT EXISTS idx_appointments_user_start ON appointments(user_id, start_time)')
        )


def init_schema(engine: Engine, settings: Settings) -> None:
    """Create both tables and make sure the default owner exists."""
    from cali.models import appointment, user  # noqa: F401
    from cali.repositories.user_repo import UserRepository

    Base.metadata.create_all(bind=engine)
    ensure_appointment_schema(engine)

    with Session(engine) as db:
        UserRepository(db).ensure(settings.default_user_id, settings.default_username)
