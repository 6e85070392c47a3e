import logging
import time
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, configure_logging
from .errors import ServiceError
from .routes import router
from .services import Services, build_services


logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    for error in exc.errors():
        message = str(error.get("msg", ""))
        # pydantic prefixes messages raised from validators
        if message.startswith("Value error, "):
            return message[len("Value error, "):]
    return "Invalid request body"


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """Build the API with its clients; startup/shutdown own their lifecycle."""
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    services = services or build_services(settings)

    app = FastAPI(
        title="Mantle AI Contract API",
        description="Generate, analyze, test and decode Mantle smart contracts with an LLM.",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.services = services
    app.include_router(router)

    @app.on_event("startup")
    async def startup() -> None:
        await services.startup()
        logger.info("Services started")

    @app.on_event("shutdown")
    async def shutdown() -> None:
        await services.shutdown()

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        if request.url.path.startswith("/api"):
            duration = (time.perf_counter() - start) * 1000
            logger.info("%s %s %s in %.0fms", request.method, request.url.path, response.status_code, duration)
        return response

    @app.exception_handler(ServiceError)
    async def service_error(_request: Request, exc: ServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s: %s", exc.message, exc.details)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": _validation_message(exc), "details": [str(e.get("msg")) for e in exc.errors()]},
        )

    return app


def run() -> None:
    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
