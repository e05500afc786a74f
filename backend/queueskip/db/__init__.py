from queueskip.db.base import Base, TimestampMixin
from queueskip.db.session import build_engine, engine, SessionLocal, get_db

__all__ = ["Base", "TimestampMixin", "build_engine", "engine", "SessionLocal", "get_db"]
