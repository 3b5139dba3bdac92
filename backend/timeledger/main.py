import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from timeledger.api.events import router as events_router
from timeledger.api.reports import router as reports_router
from timeledger.db.session import create_tables

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the events table on startup."""
    logger.info("Creating tables...")
    await create_tables()

    yield

    logger.info("Shutting down timeledger backend.")


app = FastAPI(
    title="timeledger API",
    description="Clock IN/OUT ledger: pair reconciliation, worked time, expected exit and surplus.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(events_router, prefix="/api/events", tags=["Events"])
app.include_router(reports_router, prefix="/api/reports", tags=["Reports"])


@app.get("/health", tags=["System"])
async def health_check() -> dict:
    return {"status": "ok"}
