import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from config import get_settings


logger = logging.getLogger(__name__)

MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def build_engine(url: Optional[str] = None) -> Engine:
    """Create an engine for ``url`` (defaults to the configured database).

    SQLite connections get foreign keys switched on so owner and parent
    deletes cascade; file databases also run in WAL mode. In-memory URLs
    share a single connection so every session sees the same tables.
    """
    url = url or get_settings().database_url
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    in_memory = url in MEMORY_URLS
    options: dict[str, object] = {"connect_args": {"check_same_thread": False}}
    if in_memory:
        options["poolclass"] = StaticPool
    eng = create_engine(url, **options)

    @event.listens_for(eng, "connect")
    def _sqlite_pragmas(dbapi_conn, _record):
        cursor = dbapi_conn.cursor()
        if not in_memory:
            cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.close()

    return eng


engine = build_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


def init_db(bind: Optional[Engine] = None) -> None:
    # models must be imported so every table is registered on the metadata
    import models  # noqa: F401

    target = bind or engine
    Base.metadata.create_all(target)
    logger.info(f"init_db: tables={len(Base.metadata.tables)}")


@contextmanager
def session_scope(factory: sessionmaker = SessionLocal) -> Iterator[Session]:
    """Yield a session that commits on success and rolls back on error."""
    session: Session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
