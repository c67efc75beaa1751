import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from projecthub import cache
from projecthub.config import settings
from projecthub.database import AsyncSessionLocal, init_db, close_db
from projecthub.errors import AppError
from projecthub.routers.auth import router as auth_router
from projecthub.routers.users import router as users_router
from projecthub.routers.organizations import router as organizations_router
from projecthub.routers.projects import router as projects_router
from projecthub.routers.tasks import router as tasks_router
from projecthub.routers.statuses import router as statuses_router
from projecthub.routers.comments import router as comments_router
from projecthub.routers.labels import router as labels_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
)
logger = logging.getLogger("projecthub")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.validate_secrets()
    if settings.AUTO_CREATE_TABLES:
        await init_db()
        logger.info("Database tables ready")
    await cache.connect()
    logger.info("ProjectHub API started (environment=%s, policy=%s)", settings.ENVIRONMENT, settings.AUTHZ_POLICY)

    yield

    await cache.close()
    await close_db()
    logger.info("ProjectHub API stopped")


app = FastAPI(
    lifespan=lifespan,
    title="ProjectHub API",
    description="Multi-tenant project management: organizations, projects, tasks",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return error_response(exc.status_code, exc.message, headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", []) if part != "body")
    message = str(first.get("msg", "Invalid request"))
    return error_response(400, f"{field}: {message}" if field else message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return error_response(500, "Internal server error")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return error_response(500, "Internal server error")


app.include_router(auth_router)
app.include_router(users_router)
app.include_router(organizations_router)
app.include_router(projects_router)
app.include_router(tasks_router)
app.include_router(statuses_router)
app.include_router(comments_router)
app.include_router(labels_router)


@app.get("/health")
async def health_check():
    db_status = "connected"
    try:
        async with AsyncSessionLocal() as db:
            await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Health check could not reach the database: %s", e)
        db_status = "unavailable"
    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
        "cache": "enabled" if cache.get_client() is not None else "disabled",
    }
