"""FastAPI application entry point."""

import os
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from observability import log_run_summary
from settings import configure_from
from web.deps import get_config
from web.routes import captures, contacts, records, status, tags

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()
    configure_from(config, to_file=bool(os.getenv("RAPPORT_LOG_TO_FILE")))
    logger.info("web.startup", db_path=str(config.paths.db_path))
    yield
    log_run_summary()
    logger.info("web.shutdown")


app = FastAPI(
    title="Rapport",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS: allow frontend origin
frontend_origin = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[frontend_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routes
app.include_router(captures.router)
app.include_router(records.router)
app.include_router(contacts.router)
app.include_router(tags.router)
app.include_router(status.router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
