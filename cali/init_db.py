"""Create the database schema and the default appointment owner.

Usage:
    python -m cali.init_db
"""
import sys

from sqlalchemy.exc import SQLAlchemyError

from cali.core.config import load_settings
from cali.core.exceptions import StorageError
from cali.core.logging_config import setup_logging
from cali.database import build_engine, init_schema


def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)

    engine = build_engine(settings)
    try:
        init_schema(engine, settings)
    except (SQLAlchemyError, StorageError) as exc:
        print("Schema initialization failed:", exc, file=sys.stderr)
        sys.exit(1)
    finally:
        engine.dispose()

    print(f"Database ready at {settings.database_url} (default user id {settings.default_user_id})")


if __name__ == "__main__":
    main()
