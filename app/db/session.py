"""
Database Session Management
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from atams.db.session import normalize_database_url
from app.core.config import settings

# Create engine
engine = create_engine(
    normalize_database_url(settings.DATABASE_URL),
    pool_pre_ping=True,
    echo=settings.DEBUG
)

# Session factory; SqlRecordStore opens one session per store call
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
