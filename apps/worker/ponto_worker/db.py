"""Database session for worker, built like the API's."""

from sqlalchemy.orm import sessionmaker

from ponto_api.db.session import build_engine
from ponto_worker.settings import get_settings

engine = build_engine(get_settings().database_url_computed)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Get database session, closed by the caller."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
