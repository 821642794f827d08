from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from app.api import alerts, prices, airports, health, status
from app.config import get_settings
from app.database import init_sqlite_schema

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Starting Farewatch API")

    if settings.database_url.startswith("sqlite"):
        logger.info("SQLite detected - creating tables if needed")
        init_sqlite_schema()

    if not settings.amadeus_api_key or not settings.amadeus_api_secret:
        logger.warning("⚠️ Amadeus credentials not configured - price checks and airport search will fail")

    yield

    logger.info("🛑 Shutting down Farewatch API")


app = FastAPI(
    title="Farewatch",
    description="Flight price alerts polled against the Amadeus Self-Service API",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.cors_origin],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

app.include_router(alerts.router, prefix="/api/alerts", tags=["alerts"])
app.include_router(prices.router, prefix="/api/alerts", tags=["prices"])
app.include_router(airports.router, prefix="/api/airports", tags=["airports"])
app.include_router(status.router, prefix="/api/status", tags=["status"])
app.include_router(health.router, tags=["health"])


# Health check for monitoring/Docker
@app.get("/ping")
async def ping():
    """Simple ping endpoint for health checks."""
    return {"status": "ok"}
