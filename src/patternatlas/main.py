"""Pattern Atlas FastAPI application assembly.

Wires the search and taxonomy routers, logging configuration and CORS.
Run: uvicorn patternatlas.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from patternatlas.search.router import router as search_router
from patternatlas.taxonomy.router import router as taxonomy_router


def configure_logging(debug: bool = False) -> None:
    """Route stdlib and structlog output through the same level."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging from settings before serving requests."""
    from patternatlas.config import get_settings

    configure_logging(get_settings().debug)
    yield


app = FastAPI(title="Pattern Atlas", version="0.1.0", lifespan=lifespan)

# CORS for frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],  # Vite dev server
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(search_router)
app.include_router(taxonomy_router)


@app.get("/health")
async def health() -> dict:
    """Liveness probe. Does not touch the store."""
    return {"status": "ok"}
