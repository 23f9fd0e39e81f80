from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import structlog
import time

from journal.core.config import Settings, settings
from journal.core.database import Database
from journal.core.errors import ErrorKind, JournalError
from journal.core.locks import OwnerLock
from journal.api import admin, events, notes, stats

# Configure structured logging
structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ]
)

logger = structlog.get_logger()


def create_app(config: Settings = settings) -> FastAPI:
    """Build the application; the store and lock handles live on ``app.state``"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifecycle events"""
        app.state.db = Database(config.database_url, echo=config.debug)
        await app.state.db.connect(create_schema=config.create_schema_on_startup)

        app.state.owner_lock = OwnerLock(
            config.redis_url,
            timeout=config.lock_timeout,
            use_redis=config.use_redis_locks
        )
        await app.state.owner_lock.connect()

        logger.info("application_startup", app_name=config.app_name)
        yield
        await app.state.owner_lock.close()
        await app.state.db.dispose()
        logger.info("application_shutdown")

    app = FastAPI(
        title=config.app_name,
        debug=config.debug,
        lifespan=lifespan
    )
    app.state.settings = config

    @app.exception_handler(JournalError)
    async def journal_error_handler(request: Request, exc: JournalError):
        logger.warning(
            "request_rejected",
            kind=exc.kind.value,
            detail=exc.message,
            method=request.method,
            path=request.url.path
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning("request_invalid", path=request.url.path, errors=len(exc.errors()))
        return JSONResponse(
            status_code=422,
            content={
                "error": ErrorKind.INVALID_INPUT.value,
                "detail": jsonable_encoder(exc.errors())
            }
        )

    # Middleware for logging requests
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        duration = time.time() - start_time
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2)
        )

        return response

    # Include routers
    app.include_router(events.router)
    app.include_router(notes.router)
    app.include_router(stats.router)
    app.include_router(admin.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "app": config.app_name}

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Journal Event Analytics API",
            "endpoints": {
                "health": "/health",
                "events": "/events",
                "notes": "/notes",
                "stats": "/stats",
                "docs": "/docs"
            }
        }

    return app


app = create_app()
