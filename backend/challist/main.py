from __future__ import annotations
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from challist.config import settings
from challist.db import Base, engine
from challist.errors import ConsistencyError, EngineError, NotFoundError, UpstreamError, ValidationError
from challist.logging_setup import configure_logging
from challist.routes.system import router as system_router
from challist.routes.levels import router as levels_router
from challist.routes.packs import router as packs_router
from challist.routes.submissions import router as submissions_router
from challist.routes.users import router as users_router
from challist.routes.admin import router as admin_router
import structlog

configure_logging()
log = structlog.get_logger()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    log.info("startup", env=settings.environment, version=settings.app_version, git_sha=settings.git_sha,
             scoring=settings.scoring_strategy)
    if settings.database_url.startswith("sqlite"):
        # no migrations for the local sqlite database
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    yield
    # Shutdown
    log.info("shutdown")

app = FastAPI(
    title=f"{settings.app_display_name} API",
    version=settings.app_version,
    lifespan=lifespan,
    description=f"{settings.app_display_name} API: ranked levels, packs, submissions and leaderboard",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "dev" else settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(system_router)
app.include_router(levels_router)
app.include_router(packs_router)
app.include_router(submissions_router)
app.include_router(users_router)
app.include_router(admin_router)

_STATUS: list[tuple[type[EngineError], int]] = [
    (ValidationError, 422),
    (NotFoundError, 404),
    (ConsistencyError, 409),
    (UpstreamError, 502),
]

@app.exception_handler(EngineError)
async def engine_error(request: Request, exc: EngineError):
    status = next((code for cls, code in _STATUS if isinstance(exc, cls)), 500)
    body: dict = {"detail": str(exc), "error": type(exc).__name__}
    if isinstance(exc, ValidationError) and exc.errors:
        body["errors"] = exc.errors
    if isinstance(exc, ConsistencyError):
        body["placements"] = exc.placements
        log.warning("ledger.drift_rejected", path=request.url.path, error=type(exc).__name__, placements=exc.placements)
    return JSONResponse(status_code=status, content=body)

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    structlog.contextvars.bind_contextvars(request_id=rid)
    response: Response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    structlog.contextvars.clear_contextvars()
    return response
