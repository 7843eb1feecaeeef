"""AddressResolver: the unified entry point for location resolution.

Steps for :meth:`AddressResolver.resolve`:
  1. Check the TTL cache (normalized query + declared type).
  2. Classify the input (postal / street / free_text).
  3. Obtain a coordinate and containment match:
       postal     -> OneMap postal geocode -> containment
       street     -> transaction-derived coordinate -> containment
       free_text  -> OneMap geocode of an embedded postal code, else of the
                     whole address -> containment, falling back to a
                     neighbourhood-name match when nothing is found
  4. Map the subzone to its neighbourhood and score confidence.
  5. Cache and return the ResolvedAddress.

All collaborators are passed in; nothing here is a module-level singleton.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Optional

from neighbourly.config import Settings
from neighbourly.onemap.client import OneMapClient
from neighbourly.stores.base import (
    NeighbourhoodStore,
    SpatialStore,
    StoreError,
    TransactionStore,
)
from neighbourly.stores.schema import LIVING_NOTE_DIMENSIONS

from .cache import TTLCache, cache_key
from .classifier import (
    classify_input,
    extract_postal_code,
    is_postal_code,
    normalize_input,
)
from .containment import ContainmentResolver
from .errors import InternalError, InvalidInput, NotFound
from .geocoding import GeocodeResult, Geocoder
from .models import (
    AddressCandidate,
    ContainmentMatch,
    Coordinate,
    InputKind,
    Neighbourhood,
    Query,
    ResolutionTier,
    ResolvedAddress,
    Subzone,
)
from .neighbourhoods import NameIndex, NeighbourhoodMapper, confidence_for
from .streets import StreetInferrer

logger = logging.getLogger(__name__)

STREET_SEARCH_LIMIT = 200


class AddressResolver:
    """Resolves raw user input to a subzone and neighbourhood."""

    def __init__(
        self,
        geocoder: Geocoder,
        containment: ContainmentResolver,
        streets: StreetInferrer,
        neighbourhoods: NeighbourhoodStore,
        *,
        cache: Optional[TTLCache[ResolvedAddress]] = None,
    ) -> None:
        self.geocoder = geocoder
        self.containment = containment
        self.streets = streets
        self.neighbourhood_store = neighbourhoods
        self.mapper = NeighbourhoodMapper(neighbourhoods)
        self.cache: TTLCache[ResolvedAddress] = cache if cache is not None else TTLCache(300.0)

    @property
    def spatial_store(self) -> SpatialStore:
        return self.containment.store

    @property
    def transactions(self) -> TransactionStore:
        return self.streets.transactions

    # ------------------------------------------------------------------
    # Address resolution
    # ------------------------------------------------------------------

    async def resolve(self, query: Any, declared: Optional[str] = None) -> ResolvedAddress:
        """Resolve *query* to a :class:`ResolvedAddress`.

        Raises:
            InvalidInput: Empty or non-string query, unknown declared type.
            NotFound: Nothing resolvable (includes provider outages).
            InternalError: A reference-data store failed.
        """
        if not isinstance(query, str) or not query.strip():
            raise InvalidInput("Missing or invalid query parameter")

        normalized = normalize_input(query)
        key = cache_key(normalized, declared)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info("Cache hit for query %r", normalized)
            return cached

        q = Query(raw=query, normalized=normalized, kind=classify_input(normalized, declared))
        logger.info("Input type %s for query %r", q.kind.value, q.normalized)

        if q.kind is InputKind.postal:
            result = await self._resolve_postal(q)
        elif q.kind is InputKind.street:
            result = await self._resolve_street(q)
        else:
            result = await self._resolve_free_text(q)

        logger.info(
            "Resolved %r to neighbourhood %s (%s, %s)",
            normalized, result.neighbourhood_id, result.method.value, result.confidence.value,
        )
        self.cache.set(key, result)
        return result

    async def resolve_candidate(
        self, query: Any, candidate_index: int, declared: Optional[str] = None
    ) -> ResolvedAddress:
        """Re-resolve the alternate at *candidate_index* of the primary result.

        Raises:
            NotFound: Index out of range (negative included).
        """
        primary = await self.resolve(query, declared)
        key = cache_key(primary.normalized_query, declared, candidate_index)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        if candidate_index < 0 or candidate_index >= len(primary.candidates):
            raise NotFound(f"Candidate {candidate_index} not found")
        candidate = primary.candidates[candidate_index]

        if candidate.latlng is not None:
            match = await self.containment.resolve(candidate.latlng)
            result = await self._build(
                query, primary.normalized_query, primary.kind, match,
                latlng=candidate.latlng,
                resolved_address=candidate.address,
                postal=candidate.postal,
                source_chain=["onemap", "subzone"],
            )
        else:
            neighbourhood = await self._get_neighbourhood(candidate.neighbourhood_id)
            result = await self._build_from_name(
                query, primary.normalized_query, neighbourhood, ResolutionTier.name_exact, []
            )

        self.cache.set(key, result)
        return result

    async def _resolve_postal(self, q: Query) -> ResolvedAddress:
        geo = await self.geocoder.geocode_postal(q.normalized)
        match = await self.containment.resolve(geo.coordinate)
        return await self._build(
            q.raw, q.normalized, q.kind, match,
            latlng=geo.coordinate,
            resolved_address=geo.address,
            postal=geo.postal,
            source_chain=["postal", "onemap", "subzone"],
        )

    async def _resolve_street(self, q: Query) -> ResolvedAddress:
        point, match = await self.streets.infer(q.normalized)
        return await self._build(
            q.raw, q.normalized, q.kind, match,
            latlng=point,
            resolved_address=q.normalized,
            source_chain=["transactions", "subzone"],
        )

    async def _resolve_free_text(self, q: Query) -> ResolvedAddress:
        try:
            geo, source_chain = await self._geocode_free_text(q.normalized)
            match = await self.containment.resolve(geo.coordinate)
        except NotFound as exc:
            logger.info("Geocoding %r gave no subzone (%s); trying neighbourhood names", q.normalized, exc)
            by_name = await self._resolve_by_name(q.raw, q.normalized)
            if by_name is None:
                raise
            return by_name

        return await self._build(
            q.raw, q.normalized, q.kind, match,
            latlng=geo.coordinate,
            resolved_address=geo.address,
            postal=geo.postal,
            source_chain=source_chain,
            candidates=geo.alternates,
        )

    async def _geocode_free_text(self, normalized: str) -> tuple[GeocodeResult, list[str]]:
        """Geocode an embedded postal code first, then the whole address."""
        postal = extract_postal_code(normalized)
        if postal is not None:
            try:
                geo = await self.geocoder.geocode_postal(postal)
                return geo, ["postal", "onemap", "subzone"]
            except NotFound as exc:
                logger.info("Embedded postal code %s gave no result (%s)", postal, exc)
        return await self.geocoder.geocode_address(normalized), ["onemap", "subzone"]

    async def _resolve_by_name(self, query: str, normalized: str) -> Optional[ResolvedAddress]:
        index = await self.mapper.name_index()
        ranked = index.matches(normalized)
        if not ranked:
            return None
        (neighbourhood, exact), *rest = ranked
        tier = ResolutionTier.name_exact if exact else ResolutionTier.name_partial
        candidates = [
            AddressCandidate(
                address=n.name,
                subzone_id=n.parent_subzone_id,
                neighbourhood_id=n.id,
                neighbourhood_name=n.name,
            )
            for n, _ in rest
        ]
        return await self._build_from_name(query, normalized, neighbourhood, tier, candidates)

    # ------------------------------------------------------------------
    # Result assembly
    # ------------------------------------------------------------------

    async def _build(
        self,
        query: str,
        normalized: str,
        kind: InputKind,
        match: ContainmentMatch,
        *,
        latlng: Coordinate,
        resolved_address: Optional[str] = None,
        postal: Optional[str] = None,
        source_chain: list[str],
        candidates: Optional[list[AddressCandidate]] = None,
    ) -> ResolvedAddress:
        subzone = match.subzone
        neighbourhood = await self.mapper.neighbourhood_for(subzone)
        return ResolvedAddress(
            query=query.strip(),
            normalized_query=normalized,
            kind=kind,
            resolved_address=resolved_address,
            postal=postal,
            latlng=latlng,
            subzone_id=subzone.id,
            subzone_name=subzone.name,
            planning_area_id=subzone.planning_area_id,
            planning_area_name=await self._planning_area_name(subzone.planning_area_id),
            neighbourhood_id=neighbourhood.id,
            neighbourhood_name=neighbourhood.name,
            confidence=confidence_for(match.tier),
            method=match.tier,
            best_effort=match.best_effort,
            source_chain=source_chain,
            candidates=candidates or [],
        )

    async def _build_from_name(
        self,
        query: str,
        normalized: str,
        neighbourhood: Neighbourhood,
        tier: ResolutionTier,
        candidates: list[AddressCandidate],
    ) -> ResolvedAddress:
        return ResolvedAddress(
            query=query.strip(),
            normalized_query=normalized,
            kind=InputKind.free_text,
            resolved_address=neighbourhood.name,
            subzone_id=neighbourhood.parent_subzone_id,
            planning_area_id=neighbourhood.planning_area_id,
            planning_area_name=await self._planning_area_name(neighbourhood.planning_area_id),
            neighbourhood_id=neighbourhood.id,
            neighbourhood_name=neighbourhood.name,
            confidence=confidence_for(tier),
            method=tier,
            best_effort=tier is ResolutionTier.name_partial,
            source_chain=["neighbourhood_name"],
            candidates=candidates,
        )

    async def _planning_area_name(self, planning_area_id: Optional[str]) -> Optional[str]:
        if not planning_area_id:
            return None
        try:
            return await self.spatial_store.planning_area_name(planning_area_id)
        except StoreError as exc:
            logger.warning("Planning area lookup failed for %s: %s", planning_area_id, exc)
            return None

    async def _get_neighbourhood(self, neighbourhood_id: Optional[str]) -> Neighbourhood:
        if not neighbourhood_id:
            raise NotFound("Candidate has no neighbourhood")
        try:
            neighbourhood = await self.neighbourhood_store.get_neighbourhood(neighbourhood_id)
        except StoreError as exc:
            raise InternalError(f"Neighbourhood lookup failed: {exc}") from exc
        if neighbourhood is None:
            raise NotFound(f"Neighbourhood {neighbourhood_id} not found")
        return neighbourhood

    # ------------------------------------------------------------------
    # Subzone search
    # ------------------------------------------------------------------

    async def find_subzone(self, kind: Any, query: Any) -> Subzone:
        """Resolve a declared postal code or street name to a subzone only.

        Raises:
            InvalidInput: Missing query, type other than postal/street, or a
                postal code that is not exactly six digits.
            NotFound: Geocoding or containment yielded nothing.
        """
        if not kind or not isinstance(query, str) or not query.strip():
            raise InvalidInput("Missing type or query parameter")
        if kind not in (InputKind.postal.value, InputKind.street.value):
            raise InvalidInput('Type must be "postal" or "street"')

        if kind == InputKind.postal.value:
            code = "".join(query.split())
            if not is_postal_code(code):
                raise InvalidInput("Invalid postal code format. Please enter 6 digits.")
            geo = await self.geocoder.geocode_postal(code)
            match = await self.containment.resolve(geo.coordinate)
        else:
            _, match = await self.streets.infer(query.strip())
        logger.info("Subzone search (%s) %r -> %s", kind, query, match.subzone.id)
        return match.subzone

    # ------------------------------------------------------------------
    # Living notes and street search
    # ------------------------------------------------------------------

    async def living_notes(self, name: str) -> Optional[dict[str, Any]]:
        """Return the living-quality notes for a neighbourhood name, or ``None``."""
        try:
            rows = await self.neighbourhood_store.list_living_notes()
        except StoreError as exc:
            raise InternalError(f"Living notes lookup failed: {exc}") from exc

        index = NameIndex((row["neighbourhood_name"], row) for row in rows)
        hit = index.match(name)
        if hit is None:
            return None
        row, _ = hit
        return {
            _camel(dim): {"rating": row.get(f"{dim}_rating"), "note": row.get(f"{dim}_note")}
            for dim in LIVING_NOTE_DIMENSIONS
        }

    async def street_search(self, q: Optional[str]) -> list[dict[str, Any]]:
        """Street names matching *q*, with their planning areas.

        The whole phrase is tried first; only when it matches nothing are
        streets containing every word of *q*, in any order, returned.
        """
        text = normalize_input(q or "")
        if len(text) < 2:
            return []

        words = text.split()
        try:
            rows = await self.transactions.search_street_names(
                [text], limit=STREET_SEARCH_LIMIT
            )
            if not rows and len(words) > 1:
                logger.info("No street contains %r; matching its words separately", text)
                rows = await self.transactions.search_street_names(
                    words, limit=STREET_SEARCH_LIMIT
                )
            streets: OrderedDict[str, list[str]] = OrderedDict()
            for row in rows:
                ids = streets.setdefault(row["street_name"], [])
                if row["neighbourhood_id"] not in ids:
                    ids.append(row["neighbourhood_id"])
            all_ids = sorted({nid for ids in streets.values() for nid in ids})
            areas = await self.neighbourhood_store.planning_areas_for_neighbourhoods(all_ids)
        except StoreError as exc:
            raise InternalError(f"Street search failed: {exc}") from exc

        results = []
        for street_name, ids in streets.items():
            planning_areas: list[dict[str, str]] = []
            for nid in ids:
                area = areas.get(nid)
                if area is not None and area not in planning_areas:
                    planning_areas.append(area)
            if planning_areas:
                results.append({"street_name": street_name, "planning_areas": planning_areas})
        return results


def _camel(name: str) -> str:
    head, *tail = name.split("_")
    return head + "".join(part.title() for part in tail)


def build_resolver(settings: Settings, client: OneMapClient) -> AddressResolver:
    """Wire an AddressResolver against the SQLite reference database."""
    from neighbourly.stores.sqlite import (
        SqliteNeighbourhoodStore,
        SqliteSpatialStore,
        SqliteTransactionStore,
    )

    spatial = SqliteSpatialStore(
        settings.database_path, point_queries=settings.spatial_point_queries
    )
    containment = ContainmentResolver(spatial, settings.containment_max_concurrency)
    streets = StreetInferrer(
        SqliteTransactionStore(settings.database_path),
        containment,
        row_limit=settings.street_row_limit,
    )
    return AddressResolver(
        Geocoder(client, max_alternates=settings.max_candidates),
        containment,
        streets,
        SqliteNeighbourhoodStore(settings.database_path),
        cache=TTLCache(settings.cache_ttl_seconds),
    )
