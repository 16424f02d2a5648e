from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from studyplan.api.plans import router as plans_router
from studyplan.api.todo import router as todo_router
from studyplan.config.settings import Settings, settings
from studyplan.core.errors import ErrorKind, InternalError, StudyPlanError, ValidationError
from studyplan.core.logger import setup_logger
from studyplan.core.messages import localized_message
from studyplan.db.session import Database
from studyplan.plans.lifecycle import PlanLifecycle
from studyplan.plans.store import PlanStore
from studyplan.plans.week_view import WeekViewAssembler
from studyplan.users.directory import Directory

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INCOMPLETE_REORDER_SET: status.HTTP_400_BAD_REQUEST,
    ErrorKind.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorKind.STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def create_app(app_settings: Settings | None = None, *, database: Database | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        app_settings: Settings to use (defaults to the environment-loaded settings)
        database: Already-open database to use instead of opening one from
            app_settings.database_url. The caller keeps ownership of it.

    Returns:
        Configured FastAPI application
    """
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the database and build the plan services; dispose on shutdown."""
        owns_database = database is None
        db = database or Database(app_settings.database_url)
        db.open()
        db.create_schema()

        store = PlanStore(
            db,
            retry_attempts=app_settings.store_retry_attempts,
            retry_base_delay=app_settings.store_retry_base_delay,
            retry_max_delay=app_settings.store_retry_max_delay,
        )
        directory = Directory(db)
        app.state.database = db
        app.state.store = store
        app.state.directory = directory
        app.state.lifecycle = PlanLifecycle(store)
        app.state.week_view = WeekViewAssembler(
            store,
            directory,
            locale=app_settings.locale,
            max_weeks_ahead=app_settings.max_weeks_ahead,
        )
        logger.info(f"[APP] Study plan services ready (locale={app_settings.locale})")

        yield

        if owns_database:
            db.close()
        logger.info("[APP] Study plan services stopped")

    app = FastAPI(title="Study Plan Engine", lifespan=lifespan)
    app.include_router(plans_router)
    app.include_router(todo_router)

    def error_response(exc: StudyPlanError) -> JSONResponse:
        return JSONResponse(
            status_code=_STATUS_BY_KIND[exc.kind],
            content={"error": {"kind": exc.kind.value, "message": localized_message(exc, app_settings.locale)}},
        )

    @app.exception_handler(StudyPlanError)
    async def handle_study_plan_error(request: Request, exc: StudyPlanError) -> JSONResponse:
        log = logger.error if exc.kind is ErrorKind.STORE_UNAVAILABLE else logger.info
        log(f"{request.method} {request.url.path} -> {_STATUS_BY_KIND[exc.kind]} {exc.kind.value}: {exc.detail}")
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Report malformed paths and bodies as validation errors, not raw pydantic output."""
        logger.info(f"{request.method} {request.url.path} -> invalid request: {exc.errors()}")
        return error_response(ValidationError(f"Invalid request to {request.url.path}"))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return error_response(InternalError(f"{type(exc).__name__}: {exc}"))

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all HTTP requests."""
        logger.debug(f"Request: {request.method} {request.url.path}")
        response = await call_next(request)
        logger.debug(f"Response: {response.status_code} for {request.method} {request.url.path}")
        return response

    logger.info("FastAPI application initialized")
    return app


setup_logger(settings)
app = create_app()
