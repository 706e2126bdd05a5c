"""
Base service class for Redis Tester services.
"""

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from contextlib import asynccontextmanager
from typing import Dict, List, Optional
import time

from shared.config import Settings, get_settings
from shared.logging import configure_logging, get_logger, set_request_id, clear_context
from shared.metrics import get_metrics_collector
from shared.errors import ServiceException, MethodNotAllowedError, CacheError

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
REQUEST_ID_HEADER = "X-Request-ID"


def check_supported_method(method: str, supported: List[str]) -> None:
    """Raise MethodNotAllowedError unless ``method`` is one of ``supported``."""
    if method not in supported:
        raise MethodNotAllowedError(method, supported)


class BaseService:
    """Base service class with common functionality."""

    def __init__(self, service_name: str, settings: Optional[Settings] = None):
        self.service_name = service_name
        self.config = settings if settings is not None else get_settings()

        configure_logging(service_name, self.config.log_level)
        self.logger = get_logger(service_name)
        self.metrics = get_metrics_collector(service_name)

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"{self.service_name.title()} - HTTP front end for a Redis cache",
            version="1.0.0",
            docs_url="/docs" if self.config.env == "local" else None,
            redoc_url="/redoc" if self.config.env == "local" else None,
            lifespan=self._lifespan,
        )

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        self._start_time = time.time()
        await self.startup()
        try:
            yield
        finally:
            await self.shutdown()

    async def startup(self):
        """Acquire dependencies before serving. Override in subclasses."""

    async def shutdown(self):
        """Release dependencies. Override in subclasses."""

    def _setup_middleware(self):
        """Set up middleware."""

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"] if self.config.env == "local" else [],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        @self.app.middleware("http")
        async def add_request_context(request: Request, call_next):
            request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
            start_time = time.time()

            try:
                response = await call_next(request)
                duration = time.time() - start_time

                self.metrics.record_http_request(
                    method=request.method,
                    endpoint=request.url.path,
                    status_code=response.status_code,
                    duration=duration
                )

                self.logger.info(
                    "HTTP request",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration * 1000, 2)
                )

                response.headers[REQUEST_ID_HEADER] = request_id
                return response
            finally:
                clear_context()

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.api_route("/healthz", methods=ALL_METHODS)
        async def readiness_check():
            """Readiness; fails unless every dependency answers."""
            self.logger.info("Handling a readiness check")
            dependencies = await self._check_dependencies()
            failing = [name for name, status in dependencies.items() if status != "ok"]

            if failing:
                self.metrics.record_health_check("error")
                return PlainTextResponse(f"{', '.join(failing)} unavailable", status_code=503)

            self.metrics.record_health_check("ok")
            return PlainTextResponse("ok")

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            from prometheus_client import CONTENT_TYPE_LATEST
            return Response(
                content=self.metrics.render(),
                media_type=CONTENT_TYPE_LATEST
            )

        @self.app.exception_handler(ServiceException)
        async def service_exception_handler(request: Request, exc: ServiceException):
            """Render ServiceException subclasses with their own status code."""
            if exc.status_code >= 500:
                context = {}
                if isinstance(exc, CacheError):
                    context["configuration"] = self.config.redacted().model_dump()
                self.logger.error(
                    "Dependency error",
                    code=exc.code,
                    message=exc.message,
                    details=exc.details,
                    method=request.method,
                    path=request.url.path,
                    **context
                )
            else:
                self.logger.info(
                    "Rejected request",
                    code=exc.code,
                    message=exc.message,
                    method=request.method,
                    path=request.url.path
                )

            headers = None
            if isinstance(exc, MethodNotAllowedError):
                headers = {"Allow": ", ".join(exc.allowed)}

            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_response().model_dump(),
                headers=headers
            )

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions."""
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            return JSONResponse(
                status_code=500,
                content={
                    "code": "INTERNAL_ERROR",
                    "message": "Internal server error",
                    "details": {}
                }
            )

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check service dependencies. Override in subclasses."""
        return {}

    def _get_uptime(self) -> float:
        """Get service uptime in seconds."""
        if not hasattr(self, '_start_time'):
            self._start_time = time.time()
        return time.time() - self._start_time

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower(),
            ssl_certfile=self.config.cert_file if self.config.tls_enabled else None,
            ssl_keyfile=self.config.key_file if self.config.tls_enabled else None,
        )
