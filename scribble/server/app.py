from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scribble import __version__
from scribble.config import get_config
from scribble.logging import configure_logging
from scribble.search.service import SearchService
from scribble.server.routers.search import router as search_router


def _default_service() -> SearchService:
    config = get_config()
    configure_logging(config.log_level)
    return SearchService(config)


def create_app(service_factory: Callable[[], SearchService] = _default_service) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown logic."""
        service = service_factory()
        await service.connect()
        app.state.search = service
        yield
        app.state.search = None
        await service.close()

    app = FastAPI(
        title="scribble",
        description="Hybrid note search - API server",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(search_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
