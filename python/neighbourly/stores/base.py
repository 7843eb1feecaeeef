"""Abstract interfaces for the reference-data stores the resolver reads.

Each collaborator (polygon store, transaction table, neighbourhood catalogue)
gets its own abstract base.  The resolver only depends on these interfaces,
so tests can pass fakes and deployments can swap in a PostGIS-backed store
without touching the pipeline.

All methods are async: implementations backed by blocking drivers should
run their I/O in a worker thread.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from neighbourly.resolver.models import Coordinate, Neighbourhood, Subzone


class StoreError(Exception):
    """Raised by store implementations when a read fails."""


class SpatialStore(ABC):
    """Subzone polygons plus the authoritative point-in-polygon capability."""

    @property
    def supports_point_query(self) -> bool:
        """``True`` if :meth:`find_containing` and :meth:`contains` are usable."""
        return True

    @abstractmethod
    async def find_containing(self, point: Coordinate) -> list[Subzone]:
        """Return every subzone whose polygon contains *point*."""
        ...

    @abstractmethod
    async def contains(self, subzone_id: str, point: Coordinate) -> bool:
        """Authoritative containment check against a single subzone."""
        ...

    @abstractmethod
    async def list_subzones(self) -> list[Subzone]:
        """Bulk read of all subzones with their bounding boxes, ordered by id."""
        ...

    @abstractmethod
    async def planning_area_name(self, planning_area_id: str) -> Optional[str]:
        ...


class TransactionStore(ABC):
    """Historical resale transactions, used as a street-name gazetteer."""

    @abstractmethod
    async def find_by_street(
        self, street_name: str, *, exact: bool, limit: int
    ) -> list[dict[str, Any]]:
        """Return rows with ``latitude``, ``longitude`` and ``street_name``.

        ``exact=True`` is a case-insensitive equality match; ``exact=False``
        a case-insensitive substring match.  Rows without coordinates are
        excluded.  Order is the store's retrieval order.
        """
        ...

    @abstractmethod
    async def search_street_names(
        self, words: list[str], *, limit: int
    ) -> list[dict[str, Any]]:
        """Return distinct ``street_name``/``neighbourhood_id`` rows whose
        street name contains every word (case-insensitive)."""
        ...


class NeighbourhoodStore(ABC):
    """The curated neighbourhood catalogue."""

    @abstractmethod
    async def neighbourhood_for_subzone(self, subzone_id: str) -> Optional[Neighbourhood]:
        """Return the neighbourhood owning *subzone_id*, sealed ones first."""
        ...

    @abstractmethod
    async def get_neighbourhood(self, neighbourhood_id: str) -> Optional[Neighbourhood]:
        ...

    @abstractmethod
    async def list_neighbourhoods(self) -> list[Neighbourhood]:
        ...

    @abstractmethod
    async def list_living_notes(self) -> list[dict[str, Any]]:
        """Return all living-notes rows keyed by ``neighbourhood_name``."""
        ...

    @abstractmethod
    async def planning_areas_for_neighbourhoods(
        self, neighbourhood_ids: list[str]
    ) -> dict[str, dict[str, str]]:
        """Map neighbourhood id -> ``{"id", "name"}`` of its planning area."""
        ...
