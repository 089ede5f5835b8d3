from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clinicflow import __version__
from clinicflow.api.v1.flows import get_flow_engine, router as flows_router
from clinicflow.api.v1.health import router as health_router
from clinicflow.api.v1.scheduling import router as scheduling_router
from clinicflow.config import get_settings
from clinicflow.db import engine


settings = get_settings()

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Register every flow before the first request is served.
    flow_engine = get_flow_engine()
    logger.info("Application startup completed, flows: %s", ", ".join(flow_engine.flow_names()))
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Application shutdown completed")


app = FastAPI(
    title="ClinicFlow",
    description="Booking orchestration and scheduling backend for clinics and spas",
    version=__version__,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

origins = (
    [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    if settings.allowed_origins != "*"
    else ["*"]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(flows_router)
app.include_router(scheduling_router)
