"""
gamify.database.seed — Default Settings Seeder
===============================================

Baseline settings written on first startup so scoring works before anyone
has tuned it.  Idempotent — only inserts keys that don't already exist, so
weights edited through the API are never overwritten.
"""

from __future__ import annotations

import json
import logging

from sqlalchemy import Engine
from sqlalchemy.orm import Session

from gamify.constants import DEFAULT_SCORING_WEIGHTS, SCORING_WEIGHTS_KEY
from gamify.database.models import Setting

logger = logging.getLogger(__name__)


DEFAULT_SETTINGS: dict[str, tuple[object, str, str]] = {
    SCORING_WEIGHTS_KEY: (
        DEFAULT_SCORING_WEIGHTS, "scoring", "Weights for the quiz attempt scoring formula",
    ),
}
"""Each entry maps ``key`` → ``(default_value, category, description)``."""


def seed_default_settings(engine: Engine) -> None:
    """Insert default settings that don't yet exist."""
    session = Session(engine)
    inserted = 0
    try:
        for key, (value, category, desc) in DEFAULT_SETTINGS.items():
            if session.get(Setting, key) is None:
                session.add(Setting(
                    key=key,
                    value_json=json.dumps(value),
                    category=category,
                    description=desc,
                ))
                inserted += 1
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    if inserted:
        logger.info("Seeded %d default settings.", inserted)
