import os
from dotenv import load_dotenv
from sqlalchemy import create_engine

load_dotenv()

DEFAULT_DATABASE_URL = "sqlite:///phonelocation.db"


def get_database_url():
    return (
        os.getenv("PHONELOCATION_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or DEFAULT_DATABASE_URL
    )


def get_busy_timeout():
    try:
        return float(os.getenv("PHONELOCATION_DB_TIMEOUT", "5"))
    except ValueError:
        return 5.0


def get_engine(url=None, **kwargs):
    """Return SQLAlchemy engine for the location database.

    The URL comes from the environment (or .env) unless given explicitly. Connections
    are shared across threads, so sqlite's same-thread check is turned off and the
    busy timeout bounds how long a writer waits on the file lock.
    """
    db_url = url or get_database_url()
    connect_args = kwargs.pop("connect_args", {})
    if db_url.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", get_busy_timeout())
    return create_engine(db_url, future=True, connect_args=connect_args, **kwargs)


def get_dialect_name(engine):
    return engine.dialect.name
