"""FastAPI application for the Neighbourly location resolver.

Endpoints:
    POST /address/resolve              Resolve an address, postal code or street
    POST /subzones/search              Postal code / street name -> subzone
    GET  /neighbourhoods/living-notes  Living-quality notes for a neighbourhood
    GET  /street-search                Street-name autocomplete
    GET  /health                       Health check

Run with:
    uvicorn api.main:app --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from neighbourly.config import get_settings
from neighbourly.onemap.client import OneMapClient
from neighbourly.resolver.pipeline import build_resolver
from routers import address, neighbourhoods, streets, subzones

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the OneMap client and wire the resolver against the reference DB."""
    settings = get_settings()
    async with OneMapClient(settings) as client:
        app.state.resolver = build_resolver(settings, client)
        logger.info("Resolver ready (database %s)", settings.database_path)
        yield
    app.state.resolver = None


app = FastAPI(
    title="Neighbourly Location Resolver",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(address.router)
app.include_router(subzones.router)
app.include_router(neighbourhoods.router)
app.include_router(streets.router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report a missing or malformed request body as a 400, like any other bad input."""
    logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"detail": "Invalid request body"})


@app.get("/health")
async def health_endpoint() -> dict[str, str]:
    return {"status": "ok"}
