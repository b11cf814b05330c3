"""FastAPI server for the SAP order payload mapper.

Main entry point for the API server. Run with:
    uvicorn api.server:app --reload
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import (
    health,
    configuration,
    simulation,
    reference,
)
from config_codec import ConfigurationError
from core import __version__
from core.observability.logging import configure_logging, get_logger
from reference_data import get_all_invoicing_item_names, get_all_money_movement_names


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    configure_logging()
    logger.info(
        "Payload mapper API starting up",
        extra_fields={
            "version": __version__,
            "invoicing_items": len(get_all_invoicing_item_names()),
            "money_movements": len(get_all_money_movement_names()),
        },
    )

    yield

    logger.info("Payload mapper API shutting down")


async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """Rejected configuration documents answer 422 with the detail lines."""
    logger.warning(
        "Configuration rejected",
        extra_fields={"path": request.url.path, "error": str(exc), "details": len(exc.details)},
    )
    return JSONResponse(
        status_code=422,
        content={"detail": {"message": str(exc), "errors": exc.details}},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="SAP Order Payload Mapper API",
        description="Edit, validate, import/export and simulate SAP order payload mapping configurations",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ConfigurationError, configuration_error_handler)

    app.include_router(health.router, tags=["Health"])
    app.include_router(configuration.router, prefix="/configuration", tags=["Configuration"])
    app.include_router(simulation.router, prefix="/simulation", tags=["Simulation"])
    app.include_router(reference.router, prefix="/reference", tags=["Reference"])

    return app


# Default app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.server:app", host="0.0.0.0", port=8000, reload=True)
