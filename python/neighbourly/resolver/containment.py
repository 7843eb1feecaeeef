"""Spatial containment: coordinate -> enclosing subzone.

Resolution order (first hit wins):
  1. Authoritative point-in-polygon query against the spatial store.
  2. Bounding-box pre-filter over all subzones:
       0 candidates  -> NotFound
       1 candidate   -> returned directly (bbox_unique)
       n candidates  -> per-candidate authoritative check, first success in
                        store order wins (bbox_verified)
  3. Best effort: the first bbox candidate, tagged as a guess (bbox_guess).

Per-candidate check errors count as "no match" and never abort the scan.
"""

from __future__ import annotations

import logging
from typing import Optional

from neighbourly.stores.base import SpatialStore, StoreError

from .concurrency import first_in_order
from .errors import InternalError, NotFound
from .models import (
    BestEffortMatch,
    ContainmentMatch,
    Coordinate,
    ExactMatch,
    ResolutionTier,
    Subzone,
)

logger = logging.getLogger(__name__)


class ContainmentResolver:
    """Two-tier subzone lookup around a :class:`SpatialStore`."""

    def __init__(self, store: SpatialStore, max_concurrency: int = 8) -> None:
        self.store = store
        self.max_concurrency = max_concurrency

    async def resolve(self, point: Coordinate) -> ContainmentMatch:
        """Return the best-matching subzone for *point*.

        Raises:
            NotFound: No subzone's bounding box contains the point.
            InternalError: The bulk subzone read failed.
        """
        exact = await self._authoritative(point)
        if exact is not None:
            return ExactMatch(subzone=exact, tier=ResolutionTier.exact)

        candidates = await self._bbox_candidates(point)
        if not candidates:
            raise NotFound(f"No subzone contains ({point.lat}, {point.lng})")

        if len(candidates) == 1:
            return ExactMatch(subzone=candidates[0], tier=ResolutionTier.bbox_unique)

        async def _verify(candidate: Subzone) -> Optional[bool]:
            return True if await self._check(candidate, point) else None

        hit = await first_in_order(candidates, _verify, self.max_concurrency)
        if hit is not None:
            return ExactMatch(subzone=hit[0], tier=ResolutionTier.bbox_verified)

        logger.info(
            "No containment check succeeded for (%s, %s); guessing %s out of %d bbox candidates",
            point.lat, point.lng, candidates[0].id, len(candidates),
        )
        return BestEffortMatch(subzone=candidates[0])

    async def _authoritative(self, point: Coordinate) -> Optional[Subzone]:
        if not self.store.supports_point_query:
            return None
        try:
            matches = await self.store.find_containing(point)
        except Exception as exc:
            logger.warning("Point-in-polygon query failed, falling back to bbox: %s", exc)
            return None
        return matches[0] if matches else None

    async def _bbox_candidates(self, point: Coordinate) -> list[Subzone]:
        try:
            subzones = await self.store.list_subzones()
        except StoreError as exc:
            raise InternalError(f"Failed to read subzones: {exc}") from exc
        return [sz for sz in subzones if sz.bbox is not None and sz.bbox.contains(point)]

    async def _check(self, candidate: Subzone, point: Coordinate) -> bool:
        if not self.store.supports_point_query:
            return False
        try:
            return bool(await self.store.contains(candidate.id, point))
        except Exception as exc:
            logger.debug("Containment check failed for %s: %s", candidate.id, exc)
            return False
