"""
Database session management (SQLAlchemy)

PostgreSQL in production; a SQLite URL works for local runs (the JSONB
column degrades to JSON there).
"""
import psycopg
from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from messledger.config import get_settings


class Base(DeclarativeBase):
    """
    SQLAlchemy declarative base for all ORM models
    """
    pass


_engine = None
_SessionLocal = None


def get_engine():
    """Get or create the SQLAlchemy engine (singleton)"""
    global _engine
    if _engine is None:
        settings = get_settings()
        url = settings.get_sqlalchemy_url()
        if url.startswith("sqlite"):
            _engine = create_engine(url, echo=settings.DB_ECHO, connect_args={"check_same_thread": False})
        else:
            _engine = create_engine(url, echo=settings.DB_ECHO, pool_pre_ping=True)
    return _engine


def get_session_factory():
    """Get or create session factory (singleton)"""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)
    return _SessionLocal


def get_db() -> Session:
    """
    FastAPI dependency: one session per request, closed afterwards

    Usage:
        @router.get("/api/v1/households/{household_id}/...")
        def endpoint(db: Session = Depends(get_db)):
            ...
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def check_db_connection() -> None:
    """
    Readiness probe: run SELECT 1 against the configured database

    Raises:
        psycopg.OperationalError: PostgreSQL unreachable
        sqlalchemy.exc.OperationalError: SQLite file unusable
    """
    settings = get_settings()
    if settings.DATABASE_URL.startswith("postgresql"):
        dsn = settings.DATABASE_URL.replace("postgresql+psycopg://", "postgresql://", 1)
        with psycopg.connect(dsn, connect_timeout=3) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return

    with get_engine().connect() as conn:
        conn.execute(text("SELECT 1"))
