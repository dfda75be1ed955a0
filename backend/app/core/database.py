from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base

from app.core.config import settings


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def make_engine(url: str, **kwargs):
    # SQLite needs check_same_thread, Postgres must NOT have it
    is_sqlite = url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    eng = create_engine(url, connect_args=connect_args, **kwargs)

    if is_sqlite:
        # built-in lower() only folds ASCII; ilike() compiles to lower(x) LIKE lower(y)
        @event.listens_for(eng, "connect")
        def _register_lower(dbapi_conn, _record):
            dbapi_conn.create_function("lower", 1, _unicode_lower, deterministic=True)

    return eng


engine = make_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()
