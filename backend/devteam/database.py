from collections.abc import Generator
from uuid import UUID

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker

from devteam.config import settings


def _engine_options(database_url: str) -> dict:
    # SQLite connections are shared between the request threadpool and the event loop
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def exists(db: Session, model: type, id: UUID) -> bool:
    """Check for a row by primary key without loading it."""
    return db.scalar(select(model.id).where(model.id == id)) is not None  # type: ignore[attr-defined]
