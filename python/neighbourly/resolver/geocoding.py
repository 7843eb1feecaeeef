"""Geocoding adapter: postal code or address text -> Coordinate.

Wraps :class:`OneMapClient` and turns provider responses into domain
results.  Only the first-ranked result supplies the coordinate; the rest
become ranked alternates.  One attempt per call, no retry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from neighbourly.geometry import parse_latlng
from neighbourly.onemap.client import OneMapClient, OneMapUnavailableError
from neighbourly.onemap.models import OneMapResult

from .classifier import is_postal_code, normalize_input
from .errors import InvalidInput, InvalidResult, NotFound, UpstreamFailure
from .models import AddressCandidate, Coordinate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeocodeResult:
    coordinate: Coordinate
    address: str
    postal: Optional[str] = None
    alternates: list[AddressCandidate] = field(default_factory=list)


class Geocoder:
    """Domain-level geocoding on top of the OneMap client."""

    def __init__(self, client: OneMapClient, max_alternates: int = 5) -> None:
        self.client = client
        self.max_alternates = max_alternates

    async def geocode_postal(self, postal_code: str) -> GeocodeResult:
        code = "".join(postal_code.split())
        if not is_postal_code(code):
            raise InvalidInput("Invalid postal code format. Please enter 6 digits.")
        result = await self._geocode(code)
        return GeocodeResult(
            coordinate=result.coordinate,
            address=result.address,
            postal=result.postal or code,
            alternates=[],
        )

    async def geocode_address(self, address: str) -> GeocodeResult:
        return await self._geocode(normalize_input(address))

    async def _geocode(self, search_val: str) -> GeocodeResult:
        try:
            response = await self.client.search(search_val)
        except OneMapUnavailableError as exc:
            raise UpstreamFailure(str(exc)) from exc

        if response.found == 0 or not response.results:
            raise NotFound(f"No geocoding results for {search_val!r}")

        top, *rest = response.results
        try:
            lat, lng = parse_latlng(top.latitude, top.longitude)
        except ValueError as exc:
            raise InvalidResult(f"Unusable coordinate from provider: {exc}") from exc

        logger.debug("Geocoded %r to (%.6f, %.6f)", search_val, lat, lng)
        return GeocodeResult(
            coordinate=Coordinate(lat=lat, lng=lng),
            address=top.display_address,
            postal=top.postal_code,
            alternates=self._alternates(rest),
        )

    def _alternates(self, results: list[OneMapResult]) -> list[AddressCandidate]:
        alternates: list[AddressCandidate] = []
        for result in results:
            if len(alternates) >= self.max_alternates:
                break
            try:
                lat, lng = parse_latlng(result.latitude, result.longitude)
            except ValueError:
                continue
            alternates.append(
                AddressCandidate(
                    address=result.display_address,
                    postal=result.postal_code,
                    latlng=Coordinate(lat=lat, lng=lng),
                )
            )
        return alternates
