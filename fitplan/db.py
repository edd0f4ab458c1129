from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from fitplan.models import Base


def build_engine(url: str) -> Engine:
    return create_engine(url, pool_pre_ping=True)


def build_session_factory(engine: Engine, create_schema: bool = True) -> sessionmaker:
    if create_schema:
        Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@lru_cache(maxsize=4)
def get_session_factory(url: str) -> sessionmaker:
    """One engine and session factory per database URL."""
    return build_session_factory(build_engine(url))


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
