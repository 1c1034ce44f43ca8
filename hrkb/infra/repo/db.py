"""DB utilities for SQLAlchemy sessions/engine.

Uses `DATABASE_URL` from settings; `sqlite+pysqlite:///:memory:` gets a `StaticPool` so that every
session shares the same in-memory database (tests).
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


def get_engine(url: str) -> Engine:
    """Crée un moteur SQLAlchemy à partir de l'URL de base de données."""
    kwargs: dict = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url.endswith("://"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, echo=False, **kwargs)


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Crée une factory de sessions SQLAlchemy."""
    return sessionmaker(bind=engine, class_=Session, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Contexte de session SQLAlchemy avec gestion automatique des transactions.

    Valide la transaction en sortie normale, l'annule sur exception puis relance celle-ci.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
