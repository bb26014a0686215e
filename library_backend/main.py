import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from library_backend.api import routes
from library_backend.core.config import Settings, configure_logging
from library_backend.core.database import StorageGateway
from library_backend.core.errors import LibraryError, StorageError

logger = logging.getLogger("library.api")


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(settings: Optional[Settings] = None, gateway: Optional[StorageGateway] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    if gateway is None:
        gateway = StorageGateway(
            settings.database_url,
            pool_size=settings.pool_size,
            pool_timeout=settings.pool_timeout,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        gateway.init()
        yield
        gateway.dispose()

    app = FastAPI(title="Library Management API", lifespan=lifespan)
    app.state.gateway = gateway
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(routes.router, prefix="/api")

    @app.exception_handler(LibraryError)
    async def library_error_handler(request: Request, exc: LibraryError):
        if isinstance(exc, StorageError):
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        fields = [".".join(str(p) for p in e["loc"] if p != "body") for e in exc.errors()]
        fields = [f for f in fields if f]
        message = f"Invalid request: {', '.join(fields)}" if fields else "Invalid request"
        return _error_response(400, message)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"{request.method} {request.url.path} failed", exc_info=exc)
        return _error_response(500, LibraryError.message)

    @app.get("/health")
    def health():
        return {"status": "ok", "time": datetime.utcnow().isoformat()}

    @app.get("/ready")
    def ready():
        if gateway.is_ready():
            return {"ready": True}
        return JSONResponse(status_code=503, content={"ready": False})

    return app


app = create_app()
