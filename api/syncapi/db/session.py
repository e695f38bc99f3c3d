from collections.abc import Generator

from sqlalchemy.orm import Session, sessionmaker

from syncapi.core.config import get_settings
from syncworker.db import build_engine

settings = get_settings()

engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
