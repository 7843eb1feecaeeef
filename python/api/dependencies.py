"""Request-scoped dependencies shared by the routers."""

from __future__ import annotations

from fastapi import HTTPException, Request

from neighbourly.resolver.errors import InternalError, ResolverError
from neighbourly.resolver.pipeline import AddressResolver


def get_resolver(request: Request) -> AddressResolver:
    """Return the AddressResolver built at startup."""
    resolver = getattr(request.app.state, "resolver", None)
    if resolver is None:
        raise HTTPException(status_code=503, detail="Resolver not ready")
    return resolver


def to_http_error(exc: ResolverError) -> HTTPException:
    """Translate a resolver error into the matching HTTPException."""
    if isinstance(exc, InternalError) or exc.status_code >= 500:
        return internal_error(exc)
    return HTTPException(status_code=exc.status_code, detail=str(exc))


def internal_error(exc: Exception) -> HTTPException:
    return HTTPException(
        status_code=500,
        detail={"error": "Internal server error", "details": str(exc)},
    )
