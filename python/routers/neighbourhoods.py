"""Router for /neighbourhoods: per-neighbourhood reference content."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_resolver, internal_error, to_http_error
from neighbourly.resolver.errors import ResolverError
from neighbourly.resolver.pipeline import AddressResolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/neighbourhoods", tags=["neighbourhoods"])


@router.get("/living-notes")
async def living_notes(
    name: Optional[str] = None,
    resolver: AddressResolver = Depends(get_resolver),
) -> Optional[dict[str, Any]]:
    """Living-quality notes for *name*, or ``null`` when none are recorded."""
    if not name or not name.strip():
        raise HTTPException(status_code=400, detail="Missing name parameter")
    try:
        return await resolver.living_notes(name)
    except ResolverError as exc:
        raise to_http_error(exc) from exc
    except Exception as exc:
        logger.exception("Unexpected error loading living notes for %r", name)
        raise internal_error(exc) from exc
