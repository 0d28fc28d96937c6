import logging

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from api import state
from storage import db

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint for container orchestration."""
    health = {
        "status": "healthy",
        "store": state.settings.store,
        "llm_provider": state.settings.llm_provider,
    }

    if state.settings.store == "postgres":
        db_health = await db.health_check()
        health["database"] = db_health
        if db_health["status"] != "healthy":
            health["status"] = "degraded"

    return health


@router.get("/metrics")
async def metrics() -> Response:
    """
    Prometheus scrape endpoint.
    """
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
