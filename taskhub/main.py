"""
FastAPI Application Entry Point - One application per service

    uvicorn taskhub.main:user_app --port 3000
    python -m taskhub.main task-service
"""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool
from urllib.parse import urlparse
import argparse
import asyncio
import logging
import sys
import time

from taskhub.core.config import settings, validate_config, is_production
from taskhub.core.exceptions import APIError, StatusError
from taskhub.database import SessionLocal, check_db_connection, close_db_connections, get_pool_stats, init_db

# Configure application logging with timestamp and log level
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)

USER_SERVICE = "user-service"
TASK_SERVICE = "task-service"
ANALYTICS_SERVICE = "analytics-service"
FILE_SERVICE = "file-service"
FRONTEND_SERVICE = "frontend-service"

# service -> (ASGI attribute in this module, settings attribute with its URL)
SERVICES = {
    USER_SERVICE: ("user_app", "USER_SERVICE_URL"),
    TASK_SERVICE: ("task_app", "TASK_SERVICE_URL"),
    ANALYTICS_SERVICE: ("analytics_app", "ANALYTICS_SERVICE_URL"),
    FILE_SERVICE: ("file_app", "FILE_SERVICE_URL"),
    FRONTEND_SERVICE: ("frontend_app", "FRONTEND_SERVICE_URL"),
}


def create_application(service: str) -> FastAPI:
    """
    Factory function to create and configure one service's FastAPI application.
    Every service shares middleware, error handling and startup; only routers differ.
    """
    if service not in SERVICES:
        raise ValueError(f"Unknown service: {service}")

    app = FastAPI(
        title=f"{settings.APP_NAME} {service}",  # API documentation title
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        docs_url="/api/docs" if not is_production() else None,  # Hide Swagger docs in production
        redoc_url="/api/redoc" if not is_production() else None,
    )
    app.state.service = service

    setup_middleware(app)  # Configure CORS and request logging
    setup_exception_handlers(app)  # Configure global error handling
    setup_event_handlers(app)  # Configure startup/shutdown hooks
    setup_routers(app, service)  # Mount this service's routers

    return app


def setup_middleware(app: FastAPI) -> None:
    """Configure application middleware - runs on every request/response"""

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,  # Frontend origins allowed to call the API
        allow_credentials=True,  # Session cookie travels cross-origin
        allow_methods=["*"],  # GET, POST, PUT, PATCH, DELETE
        allow_headers=["*"],  # Authorization and X-Session-Token included
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every request with method, path, status, and processing time"""
        start_time = time.time()
        logger.info(f"➡️  {request.method} {request.url.path}")

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            f"⬅️  {request.method} {request.url.path} "
            f"- Status: {response.status_code} - Time: {process_time:.2f}s"
        )
        response.headers["X-Process-Time"] = str(process_time)
        return response


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure global exception handlers for consistent error responses"""

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        """Render the error's payload as-is"""
        return JSONResponse(status_code=exc.status_code, content=exc.payload, headers=exc.headers)

    @app.exception_handler(StatusError)
    async def status_error_handler(request: Request, exc: StatusError):
        """Illegal transition that escaped an endpoint's own handling"""
        logger.warning(f"⚠️  {exc.message} on {request.url.path}")
        if exc.conflict:
            return JSONResponse(
                status_code=status.HTTP_409_CONFLICT,
                content={"success": False, "error": exc.message},
            )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"success": False, "errors": [exc.message]},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """
        Handle Pydantic validation errors (invalid request data).
        Returns readable messages plus field-level details.
        """
        errors = []
        for error in exc.errors():
            errors.append({
                "field": ".".join(str(x) for x in error["loc"]),  # Field path (e.g., "body.email")
                "message": error["msg"],
                "type": error["type"]
            })

        logger.warning(f"❌ Validation error on {request.url.path}: {errors}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "success": False,
                "error": "Validation Error",
                "errors": [f"{e['field']}: {e['message']}" for e in errors],
                "detail": errors,
                "timestamp": time.time(),
            }
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        """
        Handle database errors - logs full details but returns generic message.
        Security: Never expose database schema or internal errors to client.
        """
        logger.error(
            f"❌ Database error on {request.method} {request.url.path}: {str(exc)}",
            exc_info=True
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "Database Error",
                "detail": "An error occurred while processing your request. Please try again later.",
                "timestamp": time.time()
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """
        Catch-all handler for unexpected exceptions.
        Prevents app crashes and logs full error details for debugging.
        """
        logger.error(
            f"❌ Unhandled exception on {request.method} {request.url.path}: {str(exc)}",
            exc_info=True
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "Internal Server Error",
                "detail": "An unexpected error occurred.",
                "timestamp": time.time()
            }
        )


def cleanup_expired_sessions() -> int:
    from taskhub.models.session import cleanup_expired

    db = SessionLocal()
    try:
        return cleanup_expired(db)
    finally:
        db.close()


async def session_cleanup_loop(interval: int) -> None:
    """Sweep expired sessions every interval seconds until cancelled"""
    while True:
        await asyncio.sleep(interval)
        try:
            await run_in_threadpool(cleanup_expired_sessions)
        except Exception as e:  # A failed pass must not end the sweeper
            logger.error(f"❌ Session cleanup failed: {e}", exc_info=True)


def setup_event_handlers(app: FastAPI) -> None:
    """Configure startup and shutdown event handlers"""

    @app.on_event("startup")
    async def startup_event():
        """
        Run on application startup - validate config and check dependencies.
        Fail fast: If checks fail, application won't start.
        """
        service = app.state.service
        logger.info(f"🚀 Starting {service}...")

        try:
            validate_config()
        except Exception as e:
            logger.error(f"❌ Configuration validation failed: {e}")
            sys.exit(1)

        if not check_db_connection():
            logger.error("❌ Cannot connect to database. Exiting.")
            sys.exit(1)

        init_db()

        if service == FILE_SERVICE:
            from taskhub.models.files import create_default_categories

            db = SessionLocal()
            try:
                create_default_categories(db)
            finally:
                db.close()

        app.state.session_sweeper = None
        if service == USER_SERVICE and settings.SESSION_CLEANUP_INTERVAL_SECONDS > 0:
            app.state.session_sweeper = asyncio.create_task(
                session_cleanup_loop(settings.SESSION_CLEANUP_INTERVAL_SECONDS)
            )
            logger.info(f"🧹 Session cleanup every {settings.SESSION_CLEANUP_INTERVAL_SECONDS}s")

        logger.info(f"📊 Database pool: {get_pool_stats()}")
        logger.info(f"✅ {service} started successfully")
        logger.info(f"🌍 Environment: {settings.ENVIRONMENT}")
        logger.info(f"🔧 Debug mode: {settings.DEBUG}")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Run on application shutdown - clean up resources gracefully"""
        logger.info(f"🛑 Shutting down {app.state.service}...")
        sweeper = getattr(app.state, "session_sweeper", None)
        if sweeper is not None:
            sweeper.cancel()
        close_db_connections()
        logger.info("✅ Shutdown complete")


def setup_routers(app: FastAPI, service: str) -> None:
    """Mount the routers one service exposes"""
    from taskhub.api.health import create_health_router

    if service == USER_SERVICE:
        from taskhub.api import auth, users
        app.include_router(create_health_router(service))
        app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
        app.include_router(users.router, prefix="/api/v1/users", tags=["Users"])

    elif service == TASK_SERVICE:
        from taskhub.api import tasks
        app.include_router(create_health_router(service))
        app.include_router(tasks.router, prefix="/api/v1/tasks", tags=["Tasks"])

    elif service == ANALYTICS_SERVICE:
        from taskhub.api import analytics
        app.include_router(create_health_router(service, {USER_SERVICE: ("USER_SERVICE_URL", False)}))
        app.include_router(analytics.router, prefix="/api/v1/analytics", tags=["Analytics"])

    elif service == FILE_SERVICE:
        from taskhub.api import files
        app.include_router(create_health_router(service))
        app.include_router(files.attachments_router, prefix="/api/v1/file_attachments", tags=["File Attachments"])
        app.include_router(files.categories_router, prefix="/api/v1/file_categories", tags=["File Categories"])
        app.include_router(files.simple_files_router, prefix="/api/v1/simple_files", tags=["Simple Files"])

    elif service == FRONTEND_SERVICE:
        from taskhub.api import frontend
        app.include_router(create_health_router(service, {
            USER_SERVICE: ("USER_SERVICE_URL", True),
            TASK_SERVICE: ("TASK_SERVICE_URL", True),
            ANALYTICS_SERVICE: ("ANALYTICS_SERVICE_URL", True),
            FILE_SERVICE: ("FILE_SERVICE_URL", True),
        }))
        app.include_router(frontend.router, tags=["Frontend"])


# Create application instances
user_app = create_application(USER_SERVICE)
task_app = create_application(TASK_SERVICE)
analytics_app = create_application(ANALYTICS_SERVICE)
file_app = create_application(FILE_SERVICE)
frontend_app = create_application(FRONTEND_SERVICE)


if __name__ == "__main__":
    """
    Direct execution entry point - for development only.
    Production: Use `uvicorn taskhub.main:<service>_app --host 0.0.0.0 --port <port>`
    """
    import uvicorn

    parser = argparse.ArgumentParser(description="Run one TaskHub service")
    parser.add_argument("service", choices=sorted(SERVICES))
    parser.add_argument("--host", default="0.0.0.0")
    args = parser.parse_args()

    app_attr, url_setting = SERVICES[args.service]
    port = urlparse(getattr(settings, url_setting)).port or 8000

    uvicorn.run(
        f"taskhub.main:{app_attr}",
        host=args.host,
        port=port,  # Taken from the service's own URL setting
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
