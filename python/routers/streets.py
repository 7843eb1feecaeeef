"""Router for /street-search: street-name autocomplete."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends

from api.dependencies import get_resolver, internal_error, to_http_error
from neighbourly.resolver.errors import ResolverError
from neighbourly.resolver.pipeline import AddressResolver

logger = logging.getLogger(__name__)

router = APIRouter(tags=["streets"])


@router.get("/street-search")
async def street_search(
    q: Optional[str] = None,
    resolver: AddressResolver = Depends(get_resolver),
) -> dict[str, Any]:
    try:
        results = await resolver.street_search(q)
    except ResolverError as exc:
        raise to_http_error(exc) from exc
    except Exception as exc:
        logger.exception("Unexpected error in street search for %r", q)
        raise internal_error(exc) from exc
    return {"results": results}
