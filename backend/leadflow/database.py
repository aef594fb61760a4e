"""Database engine, session factory and declarative base."""

from functools import lru_cache

from sqlalchemy import JSON, create_engine
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from leadflow.config import settings

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


def create_session_factory(database_url: str, **engine_kwargs) -> sessionmaker[Session]:
    engine = create_engine(database_url, **engine_kwargs)
    return sessionmaker(bind=engine, expire_on_commit=False)


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    """Process-wide session factory for the configured database."""
    return create_session_factory(settings.database_url, echo=settings.database_echo, pool_pre_ping=True)
