import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from auth import build_gate
from config import MissingConfiguration, Settings, load_settings
from database import close_db, connect_to_db
from errors import register_error_handlers
from resources import RESOURCES, build_router

logger = logging.getLogger("anime_api")

# -----------------------------
# App factory
# -----------------------------

def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(settings: Optional[Settings] = None, gate=None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # refuse to serve when the database is unreachable
        connect_to_db(settings.mongodb_uri, settings.db_name)
        try:
            yield
        finally:
            close_db()

    app = FastAPI(
        title="Anime & Manga Explorer API",
        version="1.0.0",
        description=(
            "Four collections (anime, manga, users, watchlists) with CRUD, validation, "
            "error handling, and bearer JWT security on protected routes."
        ),
        docs_url="/api-docs",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.gate = gate or build_gate(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s %s %.1f ms",
            request.method,
            request.url.path,
            response.status_code,
            elapsed,
        )
        return response

    register_error_handlers(app)

    @app.get("/", response_class=PlainTextResponse, include_in_schema=False)
    def root():
        return "Anime & Manga Explorer API up"

    @app.get("/healthz", tags=["Health"])
    def healthz():
        return {"status": "ok"}

    @app.get("/swagger.json", include_in_schema=False)
    def swagger_json():
        return JSONResponse(app.openapi())

    for resource in RESOURCES:
        app.include_router(build_router(resource))

    return app


if __name__ == "__main__":
    import uvicorn

    try:
        settings = load_settings()
    except MissingConfiguration as e:
        configure_logging("INFO")
        logger.error("%s", e)
        sys.exit(1)

    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
