from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from database import init_db
from logging_config import configure_logging
from api.investments import router as investments_router
from api.notifications import router as notifications_router

configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("app.startup", app_name=settings.app_name)
    yield
    logger.info("app.shutdown")


app = FastAPI(
    title=settings.app_name,
    description="Investor onboarding workflow API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(investments_router)
app.include_router(notifications_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
