"""Street-name coordinate inference from historical resale transactions.

There is no canonical street gazetteer, so a street is located through the
coordinates of past transactions on it: exact (case-insensitive) street-name
rows first, substring rows if there are none.  The first row whose
coordinate resolves to any subzone wins.

Rows are not aggregated: a street spanning two subzones resolves to
whichever subzone its first usable row falls in.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from neighbourly.geometry import parse_latlng
from neighbourly.stores.base import StoreError, TransactionStore

from .classifier import clean_street_name, normalize_input
from .concurrency import first_in_order
from .containment import ContainmentResolver
from .errors import InternalError, InvalidInput, NotFound
from .models import ContainmentMatch, Coordinate

logger = logging.getLogger(__name__)


class StreetInferrer:
    def __init__(
        self,
        transactions: TransactionStore,
        containment: ContainmentResolver,
        row_limit: int = 10,
        max_concurrency: int = 4,
    ) -> None:
        self.transactions = transactions
        self.containment = containment
        self.row_limit = row_limit
        self.max_concurrency = max_concurrency

    async def infer(self, street: str) -> tuple[Coordinate, ContainmentMatch]:
        """Locate *street* and resolve it to a subzone.

        Args:
            street: Street name, optionally prefixed by a block number
                ("38 Lorong 30 Geylang").

        Returns:
            The transaction coordinate used and its containment match.

        Raises:
            InvalidInput: Nothing left after stripping the block number.
            NotFound: No transaction row yields a resolvable coordinate.
            InternalError: The transaction store failed.
        """
        cleaned = normalize_input(clean_street_name(street))
        if not cleaned:
            raise InvalidInput("Street name is empty")
        logger.info("Street search: original=%r cleaned=%r", street, cleaned)

        rows = await self._rows(cleaned, exact=True)
        if not rows:
            rows = await self._rows(cleaned, exact=False)
        if not rows:
            raise NotFound(f"No transactions found for street {cleaned!r}")

        points = _coordinates(rows)
        if not points:
            raise NotFound(f"No usable coordinates for street {cleaned!r}")

        async def _try(point: Coordinate) -> Optional[ContainmentMatch]:
            try:
                return await self.containment.resolve(point)
            except NotFound:
                return None

        hit = await first_in_order(points, _try, self.max_concurrency)
        if hit is None:
            raise NotFound(f"No subzone found for street {cleaned!r}")

        point, match = hit
        logger.info("Street %r resolved to subzone %s", cleaned, match.subzone.name)
        return point, match

    async def _rows(self, street: str, *, exact: bool) -> list[dict[str, Any]]:
        try:
            rows = await self.transactions.find_by_street(
                street, exact=exact, limit=self.row_limit
            )
        except StoreError as exc:
            raise InternalError(f"Transaction lookup failed: {exc}") from exc
        logger.debug(
            "%s match for %r returned %d rows", "Exact" if exact else "Partial", street, len(rows)
        )
        return rows


def _coordinates(rows: list[dict[str, Any]]) -> list[Coordinate]:
    points: list[Coordinate] = []
    for row in rows:
        try:
            lat, lng = parse_latlng(row.get("latitude"), row.get("longitude"))
        except ValueError:
            continue
        points.append(Coordinate(lat=lat, lng=lng))
    return points
