"""Engine and session factory for the mirror store."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from psychindex.core.config import settings

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    # Sync batches run concurrently in worker threads, one session each
    pool_size=max(settings.SYNC_CONCURRENCY, 5),
    max_overflow=5,
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
