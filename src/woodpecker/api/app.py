"""FastAPI application for the puzzle training service."""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from woodpecker import monitoring
from woodpecker.api.exception_handlers import register_exception_handlers
from woodpecker.api.routes import attempts, puzzle_sets, user
from woodpecker.config import settings
from woodpecker.models.base import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    init_db()
    logger.info("Database initialized")
    yield
    logger.info("Shutting down Woodpecker API")


def create_app() -> FastAPI:
    """Build the application with middleware, handlers and routes."""
    app = FastAPI(
        title="Woodpecker Training API",
        description="Puzzle cycles, streaks, XP and achievements",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def record_request_duration(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route")
        monitoring.request_duration.labels(
            route=route.path if route is not None else "unmatched"
        ).observe(time.perf_counter() - start)
        return response

    register_exception_handlers(app)

    app.include_router(puzzle_sets.router, prefix="/puzzle-sets", tags=["puzzle-sets"])
    app.include_router(attempts.router, prefix="/puzzle-sets", tags=["attempts"])
    app.include_router(user.router, prefix="/user", tags=["user"])

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
