"""Engine factory and session management for the taxonomy store.

Builds the SQLAlchemy engine from PATTERNATLAS_DATABASE_URL. SQLite URLs get
WAL, foreign keys and a busy timeout on every connection; when an encryption
key is configured, SQLite paths are opened through the pysqlcipher dialect.
The engine is created lazily so importing the package never touches the store.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from patternatlas.config import Settings, get_settings
from patternatlas.exceptions import DatabaseError


def _build_url(settings: Settings) -> str:
    """Return the connection URL, switching SQLite to SQLCipher when keyed."""
    url = make_url(settings.database_url)
    if url.get_backend_name() != "sqlite":
        return settings.database_url

    db_path = url.database
    if db_path and db_path != ":memory:":
        # Ensure the parent directory exists
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    if settings.db_encryption_key is None:
        return settings.database_url
    if not db_path or db_path == ":memory:":
        raise DatabaseError(
            message="Encrypted stores need a file path",
            detail=f"database_url={settings.database_url}",
            suggestion="Point PATTERNATLAS_DATABASE_URL at a file or unset the encryption key",
        )
    key = settings.db_encryption_key.get_secret_value()
    return f"sqlite+pysqlcipher://:{key}@/{db_path}"


def create_db_engine(settings: Optional[Settings] = None) -> Engine:
    """Create a SQLAlchemy engine for the configured store.

    - pool_pre_ping so stale connections surface as connectivity errors early
    - SQLite connections receive WAL, foreign key and busy timeout PRAGMAs
    """
    settings = settings or get_settings()
    url = _build_url(settings)
    engine = create_engine(
        url,
        pool_pre_ping=True,
        echo=settings.debug,
    )

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def set_sqlite_pragmas(dbapi_connection, connection_record):
            """Set SQLite PRAGMAs on every new connection."""
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

    return engine


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def SessionLocal() -> Session:
    """Open a new session bound to the process-wide engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory()


@contextmanager
def get_db() -> Generator[Session, None, None]:
    """Context manager yielding a database session.

    Usage:
        with get_db() as db:
            patterns = db.query(Pattern).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
