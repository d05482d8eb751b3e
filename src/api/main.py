from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.deps import get_context, set_context
from src.api.routes import signup
from src.app_shell.context import ServiceContext
from src.shell.http.health import create_health_router

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    context: ServiceContext = app.state.context

    # Fail fast: an unreadable list file stops startup
    context.start()
    yield
    context.shutdown()


def create_app(context: ServiceContext | None = None) -> FastAPI:
    """
    Build the application around a service context.

    Without a context one is created from SML_* environment variables;
    uvicorn can call this directly with --factory.
    """
    if context is None:
        context = get_context()
    else:
        set_context(context)

    app = FastAPI(
        title="Secure Mailing List",
        version=VERSION,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.context = context

    # --- Routers ---
    app.include_router(
        create_health_router(
            version=VERSION,
            registry=context.health,
            metrics=context.metrics,
            gauges=context.gauges,
        )
    )
    # Catch-all, so it goes last
    app.include_router(signup.router)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    return app
