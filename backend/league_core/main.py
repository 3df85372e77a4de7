import logging

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .routers import admin, ratings, standings
from .exceptions import DomainException, InvalidMatchDataError, ProblemDetail
from .config import API_PREFIX
from .utils.sentry import init_sentry

logger = logging.getLogger(__name__)


def _problem_response(problem: ProblemDetail) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(),
        media_type="application/problem+json",
    )


def create_app() -> FastAPI:
    init_sentry()

    app = FastAPI(
        title="League Core API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    logger.info("API_PREFIX=%r", API_PREFIX)

    @app.get("/healthz", tags=["health"])  # Unprefixed for reverse proxy / uptime checks
    def root_healthz():
        return {"status": "ok"}

    # -------------------------------------------------------------------------
    # Error handling
    # -------------------------------------------------------------------------
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        return _problem_response(
            ProblemDetail(
                type=exc.type,
                title=exc.title,
                detail=exc.detail,
                status=exc.status_code,
                code=exc.code,
            )
        )

    @app.exception_handler(InvalidMatchDataError)
    async def invalid_match_data_handler(
        request: Request, exc: InvalidMatchDataError
    ) -> JSONResponse:
        return _problem_response(
            ProblemDetail(
                title="Invalid match data",
                detail=exc.detail,
                status=422,
                code="invalid_match_data",
            )
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return _problem_response(
            ProblemDetail(
                title=detail,
                detail=detail,
                status=exc.status_code,
                code=getattr(exc, "code", f"http_{exc.status_code}"),
            )
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception", exc_info=(type(exc), exc, exc.__traceback__))
        return _problem_response(
            ProblemDetail(
                title="Internal Server Error",
                status=500,
                detail=str(exc),
                code="internal_server_error",
            )
        )

    # -------------------------------------------------------------------------
    # Routers
    # -------------------------------------------------------------------------
    api_router = APIRouter(prefix=API_PREFIX, tags=["meta"])

    @api_router.get("/healthz", tags=["health"])
    def api_healthz():
        return {"status": "ok"}

    v0_router = APIRouter(prefix="/v0")
    v0_router.include_router(ratings.router)
    v0_router.include_router(standings.router)
    v0_router.include_router(admin.router)

    api_router.include_router(v0_router)
    app.include_router(api_router)
    return app


app = create_app()
