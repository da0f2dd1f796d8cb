"""
gamify.database.engine — Database Connection, Transactions & Async Helper
==========================================================================

Every gamification operation runs inside exactly one SQLAlchemy
:class:`Session`, and that session is one transaction: the bulk metric
increment, the re-read of the new values and the achievement unlocks all
commit together or not at all.

The services are **synchronous**.  The FastAPI layer ships each call to a
worker thread through :func:`run_db` so the event loop is never blocked and
every storage call is a suspension point for other requests.

Usage::

    from gamify.database.engine import create_db_engine, get_session, init_db

    engine = create_db_engine()          # reads DATABASE_URL from .env
    init_db(engine)                      # CREATE TABLE IF NOT EXISTS + seed

    with get_session(engine) as session:
        session.add(GameMetric(name="points", units="pts"))
        # commit happens automatically on block exit
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from gamify.database.models import Base
from gamify.errors import ConflictError, InternalError

logger = logging.getLogger(__name__)

_PG_UNIQUE_VIOLATION = "23505"

P = ParamSpec("P")
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine() -> Engine:
    """Build a SQLAlchemy :class:`Engine` from the ``DATABASE_URL`` env var.

    Raises
    ------
    RuntimeError
        If ``DATABASE_URL`` is not set.
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid PostgreSQL URL."
        )

    engine = create_engine(
        url,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,   # Reconnect stale connections automatically
        pool_timeout=10,
        pool_recycle=3600,
    )
    logger.info("Database engine created → %s", engine.url.host)
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create all tables and seed default settings.

    Safe to call on every startup.  In production the schema is managed by
    Alembic (``alembic upgrade head``); ``create_all`` covers dev/test.
    """
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")

    from gamify.database.seed import seed_default_settings

    seed_default_settings(engine)


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when *exc* comes from a UNIQUE or primary-key constraint.

    PostgreSQL reports SQLSTATE 23505; SQLite only says so in the message.
    """
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code is not None:
        return code == _PG_UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(orig)


# ---------------------------------------------------------------------------
# Session helper — one session, one transaction
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """Yield a :class:`Session` that commits on success and rolls back on
    any exception.

    Raw storage errors are translated into the service error taxonomy after
    the rollback: a uniqueness violation becomes :class:`ConflictError`;
    any other integrity failure (NOT NULL, foreign key) and anything else
    from SQLAlchemy becomes :class:`InternalError`.  Service errors raised
    inside the block propagate unchanged.
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        if is_unique_violation(exc):
            raise ConflictError(f"Uniqueness constraint violated: {exc.orig}") from exc
        logger.exception("Integrity check failed; all writes rolled back")
        raise InternalError(f"Storage integrity check failed: {exc.orig}") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Transaction aborted; all writes rolled back")
        raise InternalError(f"Storage transaction failed: {exc}") from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a **synchronous** service function on a background thread.

    Every route handler goes through this wrapper::

        result = await run_db(triggers.metric_trigger, trigger)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
