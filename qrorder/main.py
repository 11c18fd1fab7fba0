"""Entry point for the QR order service."""

import logging

from fastapi import FastAPI

from qrorder import models  # noqa: F401  registers every table on Base.metadata
from qrorder.api.v1 import router as v1_router
from qrorder.core.config import settings
from qrorder.core.database import Base, engine
from qrorder.core.error_handlers import register_exception_handlers

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

Base.metadata.create_all(bind=engine)

app = FastAPI(title=settings.PROJECT_NAME)

register_exception_handlers(app)

app.include_router(
    v1_router,
    prefix="/api/qrorder/v1",
)

__all__ = ["app"]
