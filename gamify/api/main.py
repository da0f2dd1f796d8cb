"""
gamify.api.main — FastAPI application entry point
==================================================

Run with::

    uvicorn gamify.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from gamify import __version__  # noqa: E402
from gamify.api.deps import get_config, get_engine  # noqa: E402
from gamify.api.errors import setup_error_handlers  # noqa: E402
from gamify.api.routes.engine import router as engine_router  # noqa: E402
from gamify.api.routes.layer import router as layer_router  # noqa: E402
from gamify.api.routes.metrics import router as metrics_router  # noqa: E402
from gamify.api.routes.scoring import router as scoring_router  # noqa: E402
from gamify.database.engine import init_db  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Allowed CORS origins from ``CORS_ALLOW_ORIGINS`` (comma-separated)."""
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if not raw:
        return []
    return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — configure logging, warm the DB engine."""
    cfg = get_config()
    logging.basicConfig(
        level=cfg.log_level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )

    engine = get_engine()
    init_db(engine)
    logger.info(
        "%s API started — engine ready (%s), unlock report mode %r",
        cfg.service_name, engine.url.database, cfg.unlock_report_mode,
    )
    yield
    logger.info("%s API shutting down", cfg.service_name)


app = FastAPI(
    title="Gamify API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_error_handlers(app)

app.include_router(engine_router, prefix="/api/gamification")
app.include_router(layer_router, prefix="/api/gamification")
app.include_router(metrics_router, prefix="/api/gamification")
app.include_router(scoring_router, prefix="/api/gamification")


@app.get("/api/health")
def health():
    return {"status": "ok"}
