from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
import os
import logging
from dotenv import load_dotenv
from typing import Generator

load_dotenv()

logger = logging.getLogger(__name__)

POSTGRES_URL = os.getenv("POSTGRES_URL", "sqlite:///./lms.db")

# Token verification (tokens are issued by the auth service)
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "120"))

# Learning progression
DEFAULT_PASSING_PERCENTAGE = int(os.getenv("DEFAULT_PASSING_PERCENTAGE", "60"))
ACTIVE_WINDOW_DAYS = int(os.getenv("ACTIVE_WINDOW_DAYS", "7"))
AT_RISK_PROGRESS_THRESHOLD = int(os.getenv("AT_RISK_PROGRESS_THRESHOLD", "30"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING").upper()

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://localhost:5173,http://localhost:8080"
    ).split(",")
    if origin.strip()
]


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    kwargs = {"connect_args": {"check_same_thread": False}}
    # In-memory databases live inside one connection; share it across sessions
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


# Database setup
engine = create_engine(POSTGRES_URL, **_engine_kwargs(POSTGRES_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Initialize the database and create tables if they don't exist."""
    from lms_core.models import Base

    logger.info("Initializing the database...")
    Base.metadata.create_all(bind=engine)


def reset_db():
    from lms_core.models import Base

    logger.warning("Dropping all tables...")
    Base.metadata.drop_all(bind=engine)
    logger.warning("Recreating all tables...")
    Base.metadata.create_all(bind=engine)
