# backend/database.py
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker, Session

from config import settings
from utils.errors import ServiceError, InternalFailure

logger = logging.getLogger(__name__)

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# Hosted Postgres hands out postgres:// URLs, SQLAlchemy needs postgresql://
if SQLALCHEMY_DATABASE_URL.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URL = SQLALCHEMY_DATABASE_URL.replace("postgres://", "postgresql://", 1)

if "sqlite" in SQLALCHEMY_DATABASE_URL:
    connect_args = {"check_same_thread": False} # SQLite only
else:
    connect_args = {}

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args=connect_args
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    Base.metadata.create_all(bind=engine)


@contextmanager
def atomic(db: Session, action: str = "operation"):
    """Run a block of writes as one unit: commit on success, roll back on any error.

    Service errors (validation, missing rows, illegal transitions) propagate
    unchanged. Anything else is logged and surfaced as ``InternalFailure`` so
    the caller gets a 500 envelope while the store stays as it was.
    """
    try:
        yield db
        db.commit()
    except ServiceError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception("Failed to %s, transaction rolled back", action)
        raise InternalFailure(f"Failed to {action}: {e}") from e
