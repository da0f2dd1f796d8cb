"""
gamify.api.deps — FastAPI dependency injection
===============================================
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy import Engine

from gamify.config import GamifyConfig, load_config
from gamify.database.engine import create_db_engine
from gamify.services.trigger_service import TriggerService


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> GamifyConfig:
    return load_config(os.getenv("GAMIFY_CONFIG", "config.yaml"))


def get_trigger_service(
    engine: Annotated[Engine, Depends(get_engine)],
    cfg: Annotated[GamifyConfig, Depends(get_config)],
) -> TriggerService:
    """A trigger service bound to the app engine and configured report mode."""
    return TriggerService(engine, report_mode=cfg.unlock_report_mode)
