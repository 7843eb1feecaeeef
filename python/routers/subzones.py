"""Router for /subzones/search."""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import get_resolver, internal_error, to_http_error
from neighbourly.resolver.errors import ResolverError
from neighbourly.resolver.pipeline import AddressResolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subzones", tags=["subzones"])


class SubzoneSearchRequest(BaseModel):
    type: Any = None
    query: Any = None


@router.post("/search")
async def search_subzone(
    body: SubzoneSearchRequest,
    resolver: AddressResolver = Depends(get_resolver),
) -> dict[str, Any]:
    try:
        subzone = await resolver.find_subzone(body.type, body.query)
    except ResolverError as exc:
        raise to_http_error(exc) from exc
    except Exception as exc:
        logger.exception("Unexpected error in subzone search for %r", body.query)
        raise internal_error(exc) from exc
    return {"subzone": subzone.summary()}
