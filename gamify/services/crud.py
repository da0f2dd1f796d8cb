"""
gamify.services.crud — Generic Row Helpers
===========================================

Small helpers shared by the CRUD services.  Each takes an open
:class:`Session`; the caller owns the transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy.orm import Session

from gamify.errors import NotFoundError

logger = logging.getLogger(__name__)

M = TypeVar("M")


def row_to_dict(obj: Any) -> dict | None:
    """Convert a model instance to a JSON-serializable dict."""
    if obj is None:
        return None
    result = {}
    for col in obj.__table__.columns:
        val = getattr(obj, col.key, None)
        if isinstance(val, datetime):
            val = val.isoformat()
        result[col.name] = val
    return result


def get_or_raise(session: Session, model_cls: type[M], pk: Any, label: str) -> M:
    """``session.get`` that raises :class:`NotFoundError` instead of returning None."""
    obj = session.get(model_cls, pk)
    if obj is None:
        raise NotFoundError(f"{label} {pk} not found")
    return obj


def apply_changes(
    obj: Any,
    changes: dict[str, Any],
    *,
    frozen_keys: tuple[str, ...] = ("id", "created_at"),
) -> list[str]:
    """Set every known, non-frozen attribute in *changes* on *obj*.

    Returns the names that were applied.
    """
    applied = []
    for key, value in changes.items():
        if key in frozen_keys or not hasattr(obj, key):
            continue
        setattr(obj, key, value)
        applied.append(key)
    return applied


def create_row(session: Session, row: M) -> M:
    """Add *row*, flush, and reload server-side defaults."""
    session.add(row)
    session.flush()
    session.refresh(row)
    logger.info("Created %r", row)
    return row
