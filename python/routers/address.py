"""Router for /address/resolve: the unified resolution endpoint."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import get_resolver, internal_error, to_http_error
from neighbourly.resolver.errors import ResolverError
from neighbourly.resolver.neighbourhoods import confidence_message
from neighbourly.resolver.pipeline import AddressResolver

logger = logging.getLogger(__name__)

router = APIRouter(tags=["address"])


class ResolveRequest(BaseModel):
    # Left untyped so a missing or non-string query is a 400, not a 422.
    query: Any = None
    candidateIndex: Optional[int] = None
    type: Optional[str] = None


@router.post("/address/resolve")
async def resolve_address(
    body: ResolveRequest,
    resolver: AddressResolver = Depends(get_resolver),
) -> dict[str, Any]:
    """Resolve user input to a subzone and neighbourhood.

    With ``candidateIndex`` the alternate at that position of the primary
    resolution is resolved instead.
    """
    try:
        if body.candidateIndex is not None:
            result = await resolver.resolve_candidate(
                body.query, body.candidateIndex, body.type
            )
        else:
            result = await resolver.resolve(body.query, body.type)
    except ResolverError as exc:
        if exc.status_code >= 500:
            logger.error("Resolution failed for %r: %s", body.query, exc)
        raise to_http_error(exc) from exc
    except Exception as exc:
        logger.exception("Unexpected error resolving %r", body.query)
        raise internal_error(exc) from exc

    return {
        "resolved_address": result.model_dump(mode="json"),
        "message": confidence_message(
            result.confidence, result.display_name, bool(result.candidates)
        ),
    }
