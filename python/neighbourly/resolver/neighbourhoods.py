"""Neighbourhood mapping, confidence scoring and free-text name matching."""

from __future__ import annotations

import re
from typing import Generic, Iterable, Optional, TypeVar

from neighbourly.stores.base import NeighbourhoodStore, StoreError

from .errors import InternalError, NotFound
from .models import Confidence, Neighbourhood, ResolutionTier, Subzone

V = TypeVar("V")

_WHITESPACE = re.compile(r"\s+")

# Ordered strongest first; an authoritative tier never scores below a bbox tier.
_CONFIDENCE: dict[ResolutionTier, Confidence] = {
    ResolutionTier.exact: Confidence.high,
    ResolutionTier.bbox_unique: Confidence.high,
    ResolutionTier.bbox_verified: Confidence.medium,
    ResolutionTier.bbox_guess: Confidence.low,
    ResolutionTier.name_exact: Confidence.medium,
    ResolutionTier.name_partial: Confidence.low,
}


def confidence_for(tier: ResolutionTier) -> Confidence:
    return _CONFIDENCE[tier]


def confidence_message(
    confidence: Confidence,
    display_name: Optional[str] = None,
    has_candidates: bool = False,
) -> str:
    """Short user-facing sentence describing a resolution."""
    if confidence is Confidence.high:
        return f"Neighbourhood: {display_name}" if display_name else "Neighbourhood found"
    if confidence is Confidence.medium:
        if display_name:
            return f"Likely: {display_name} (based on best match)"
        return "Likely neighbourhood found"
    if has_candidates:
        return "Multiple matches found, select your address"
    if display_name:
        return f"Best guess: {display_name} (please confirm your address)"
    return "Unable to determine neighbourhood"


def normalize_name(name: Optional[str]) -> str:
    """Trim, upper-case and collapse whitespace."""
    return _WHITESPACE.sub(" ", (name or "").strip().upper())


class NameIndex(Generic[V]):
    """Free-text name lookup: exact index first, then a symmetric substring scan.

    A key matches a query when either normalized string contains the other.
    The scan runs over keys normalized once at build time, in insertion
    order; the first matching key wins.  No edit distance, no scoring.
    """

    def __init__(self, entries: Iterable[tuple[str, V]]) -> None:
        self._exact: dict[str, V] = {}
        self._keys: list[str] = []
        for key, value in entries:
            norm = normalize_name(key)
            if not norm or norm in self._exact:
                continue
            self._exact[norm] = value
            self._keys.append(norm)

    def __len__(self) -> int:
        return len(self._keys)

    def match(self, query: str) -> Optional[tuple[V, bool]]:
        """Return ``(value, exact)`` for the first match, or ``None``."""
        norm = normalize_name(query)
        if not norm:
            return None
        if norm in self._exact:
            return self._exact[norm], True
        for key in self._keys:
            if key in norm or norm in key:
                return self._exact[key], False
        return None

    def matches(self, query: str) -> list[tuple[V, bool]]:
        """All matches in ranked order: the exact hit, then substring hits."""
        norm = normalize_name(query)
        if not norm:
            return []
        ranked: list[tuple[V, bool]] = []
        if norm in self._exact:
            ranked.append((self._exact[norm], True))
        for key in self._keys:
            if key != norm and (key in norm or norm in key):
                ranked.append((self._exact[key], False))
        return ranked


class NeighbourhoodMapper:
    """Maps a resolved subzone to the neighbourhood that owns it."""

    def __init__(self, store: NeighbourhoodStore) -> None:
        self.store = store

    async def neighbourhood_for(self, subzone: Subzone) -> Neighbourhood:
        """Raises NotFound rather than returning a partially populated result."""
        try:
            neighbourhood = await self.store.neighbourhood_for_subzone(subzone.id)
        except StoreError as exc:
            raise InternalError(f"Neighbourhood lookup failed: {exc}") from exc
        if neighbourhood is None:
            raise NotFound(f"Subzone {subzone.id} is not mapped to a neighbourhood")
        return neighbourhood

    async def name_index(self) -> NameIndex[Neighbourhood]:
        try:
            neighbourhoods = await self.store.list_neighbourhoods()
        except StoreError as exc:
            raise InternalError(f"Neighbourhood listing failed: {exc}") from exc
        return NameIndex((n.name, n) for n in neighbourhoods)
