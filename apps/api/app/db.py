from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from .settings import settings

engine = create_engine(settings.database_url, pool_pre_ping=True) if settings.database_configured else None
SessionLocal = (
    sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session) if engine is not None else None
)


def get_db() -> Generator[Session | None, None, None]:
    if SessionLocal is None:
        yield None
        return
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_health() -> bool:
    if engine is None:
        raise RuntimeError("database_not_configured")
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    return True
