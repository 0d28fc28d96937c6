import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api import state
from api.routers import ai, countdowns, focus, ops, tasks
from storage import db
from storage.postgres_store import PostgresDocumentStore
from taskwise.errors import AIOperationError, FocusSessionStateError, PersistenceError, RecordNotFoundError
from taskwise.metrics import REQUEST_LATENCY_SECONDS, REQUESTS_TOTAL

# Logging configuration
logging.basicConfig(
    level=getattr(logging, state.settings.log_level, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="TaskWise")
app.include_router(tasks.router)
app.include_router(ai.router)
app.include_router(countdowns.router)
app.include_router(focus.router)
app.include_router(ops.router)


@app.middleware("http")
async def record_request(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    if endpoint != "/metrics":
        REQUESTS_TOTAL.labels(endpoint=endpoint, status=str(response.status_code)).inc()
        REQUEST_LATENCY_SECONDS.labels(endpoint=endpoint).observe(time.time() - start)
    return response


@app.exception_handler(AIOperationError)
async def ai_operation_failed(request: Request, exc: AIOperationError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=502,
        content={"error": "ai_operation_failed", "operation": exc.operation},
    )


@app.exception_handler(RecordNotFoundError)
async def record_not_found(request: Request, exc: RecordNotFoundError) -> JSONResponse:
    kind = exc.kind.replace(" ", "_")
    return JSONResponse(status_code=404, content={"error": f"{kind}_not_found", "id": exc.record_id})


@app.exception_handler(FocusSessionStateError)
async def focus_state_conflict(request: Request, exc: FocusSessionStateError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": "focus_session_conflict", "detail": str(exc)})


@app.exception_handler(PersistenceError)
async def persistence_failed(request: Request, exc: PersistenceError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"error": "persistence_failed"})


@app.on_event("startup")
async def startup() -> None:
    settings = state.settings
    if settings.store == "postgres":
        await db.init_db_pool(settings.database_url)
        await db.init_schema()
        state.configure(store_factory=PostgresDocumentStore)
        logger.info("Using PostgreSQL document store")
    else:
        logger.info("Using in-memory document store")
    logger.info(f"LLM provider: {settings.llm_provider}")


@app.on_event("shutdown")
async def shutdown() -> None:
    if state.settings.store == "postgres":
        await db.close_db_pool()
