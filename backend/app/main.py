"""Application bootstrap for the ConnectU matching API.

This module wires the FastAPI application, builds the matching pipeline once, and exposes small lifecycle utilities.

Functions:
    lifespan(app: FastAPI): Configure logging, initialise database state, and construct the pipeline on startup.
    health_check(): Lightweight readiness probe used by monitoring and local smoke tests.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import api_router
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.db.session import init_db
from app.services.processing import build_pipeline

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    await init_db()
    pipeline = build_pipeline(settings)
    app.state.pipeline = pipeline
    try:
        yield
    finally:
        await pipeline.store.close()


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
