"""
LegianOS Goal Service - Main Application
Conversational goal intake -> extraction -> questions -> creation -> export.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from legianos import __version__
from legianos.api import chat, coaching, goals
from legianos.config import settings
from legianos.db import create_db_and_tables, verify_database_connections
from legianos.models import utcnow

logger = logging.getLogger("legianos")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=settings.log_level)

    db_status = await verify_database_connections()
    logger.info("database_status", extra=db_status)

    if settings.env != "prod":
        await create_db_and_tables()

    logger.info("legianos_online", extra={"env": settings.env, "version": __version__})
    yield
    logger.info("legianos_offline")


app = FastAPI(
    title="LegianOS",
    description="Goal intake, structuring and export",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check with database connectivity."""
    db_status = await verify_database_connections()
    return {
        "status": "healthy" if db_status.get("sqlite") else "degraded",
        "version": __version__,
        "databases": db_status,
        "timestamp": utcnow().isoformat(),
    }


app.include_router(chat.router)
app.include_router(goals.router)
app.include_router(coaching.router)
