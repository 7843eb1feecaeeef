"""Shared fixtures: a temp reference database, OneMap mocks and fake stores."""
from __future__ import annotations

from typing import Any, Optional

import pytest
import respx
from shapely.geometry import Point, Polygon, box
from shapely.geometry.base import BaseGeometry

from neighbourly.config import Settings
from neighbourly.geometry import bbox_of
from neighbourly.onemap.client import OneMapClient
from neighbourly.resolver.cache import TTLCache
from neighbourly.resolver.containment import ContainmentResolver
from neighbourly.resolver.geocoding import Geocoder
from neighbourly.resolver.models import BoundingBox, Coordinate, Neighbourhood, Subzone
from neighbourly.resolver.pipeline import AddressResolver
from neighbourly.resolver.streets import StreetInferrer
from neighbourly.stores.base import SpatialStore, StoreError, TransactionStore
from neighbourly.stores.schema import (
    init_db,
    link_subzones,
    save_living_notes,
    save_neighbourhoods,
    save_planning_areas,
    save_subzones,
    save_transactions,
)
from neighbourly.stores.sqlite import (
    SqliteNeighbourhoodStore,
    SqliteSpatialStore,
    SqliteTransactionStore,
)

BASE_URL = "https://onemap.test"

# Geometries are (lng, lat).  kallang-bahru and kallang-way split one
# square along its diagonal, so their bounding boxes are identical.
AMK_TOWN_CENTRE = box(103.84, 1.36, 103.86, 1.38)
KALLANG_BAHRU = Polygon([(103.90, 1.30), (103.92, 1.30), (103.90, 1.32)])
KALLANG_WAY = Polygon([(103.92, 1.30), (103.92, 1.32), (103.90, 1.32)])
ALJUNIED = box(103.88, 1.31, 103.89, 1.32)
MARINA_SOUTH = box(103.86, 1.27, 103.87, 1.28)

AMK_POINT = Coordinate(lat=1.37, lng=103.85)
# Inside kallang-way; inside both kallang bounding boxes.
KALLANG_WAY_POINT = Coordinate(lat=1.315, lng=103.915)
ALJUNIED_POINT = Coordinate(lat=1.315, lng=103.885)
MARINA_POINT = Coordinate(lat=1.275, lng=103.865)
# Inside Singapore, outside every subzone.
JURONG_POINT = Coordinate(lat=1.34, lng=103.69)


def onemap_result(
    lat: Any,
    lng: Any,
    address: str = "123 ANG MO KIO AVENUE 3 SINGAPORE 560123",
    postal: str = "560123",
) -> dict[str, Any]:
    return {
        "SEARCHVAL": address,
        "BLK_NO": "123",
        "ROAD_NAME": "ANG MO KIO AVENUE 3",
        "BUILDING": "NIL",
        "ADDRESS": address,
        "POSTAL": postal,
        "X": "29965.1",
        "Y": "38787.4",
        "LATITUDE": str(lat),
        "LONGITUDE": str(lng),
    }


def onemap_payload(*results: dict[str, Any]) -> dict[str, Any]:
    return {
        "found": len(results),
        "totalNumPages": 1 if results else 0,
        "pageNum": 1,
        "results": list(results),
    }


@pytest.fixture
def onemap_response():
    """Build OneMap search payloads: ``onemap_response((lat, lng, address, postal), ...)``."""

    def _build(*rows: tuple) -> dict[str, Any]:
        return onemap_payload(*(onemap_result(*row) for row in rows))

    return _build


@pytest.fixture
def mock_onemap():
    """respx mock for the OneMap base URL."""
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as mock:
        yield mock


# ---------------------------------------------------------------------------
# Reference database
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "neighbourly.db"
    init_db(path)
    save_planning_areas(
        [
            ("ang-mo-kio", "ANG MO KIO", "NORTH-EAST REGION"),
            ("kallang", "KALLANG", "CENTRAL REGION"),
            ("geylang", "GEYLANG", "CENTRAL REGION"),
            ("downtown-core", "DOWNTOWN CORE", "CENTRAL REGION"),
        ],
        path,
    )
    save_subzones(
        [
            ("aljunied", "ALJUNIED", "geylang", "CENTRAL REGION", ALJUNIED),
            ("ang-mo-kio-town-centre", "ANG MO KIO TOWN CENTRE", "ang-mo-kio",
             "NORTH-EAST REGION", AMK_TOWN_CENTRE),
            ("kallang-bahru", "KALLANG BAHRU", "kallang", "CENTRAL REGION", KALLANG_BAHRU),
            ("kallang-way", "KALLANG WAY", "kallang", "CENTRAL REGION", KALLANG_WAY),
            ("marina-south", "MARINA SOUTH", "downtown-core", "CENTRAL REGION", MARINA_SOUTH),
        ],
        path,
    )
    save_neighbourhoods(
        [
            ("amk-central", "Ang Mo Kio Central", "Hawker-dense town centre",
             "ang-mo-kio-town-centre", "sealed", "ang-mo-kio"),
            ("kallang-bahru", "Kallang Bahru", None, "kallang-bahru", "sealed", "kallang"),
            ("kallang-way", "Kallang Way", None, "kallang-way", "sealed", "kallang"),
            ("geylang-east", "Geylang East", "Shophouses and late-night food",
             None, "cluster", "geylang"),
        ],
        path,
    )
    link_subzones([("aljunied", "geylang-east")], path)
    save_transactions(
        [
            ("38", "LORONG 30 GEYLANG", 1.315, 103.885, "geylang-east"),
            ("40", "LORONG 30 GEYLANG", None, None, "geylang-east"),
            ("123", "ANG MO KIO AVE 3", 1.37, 103.85, "amk-central"),
            ("5", "ANG MO KIO AVE 10", 1.372, 103.852, "amk-central"),
            ("9", "JURONG WEST ST 91", 1.34, 103.69, None),
        ],
        path,
    )
    save_living_notes(
        [
            {
                "neighbourhood_name": "Ang Mo Kio Central",
                "noise_density_rating": "Moderate",
                "noise_density_note": "Busy around the hub",
                "daily_convenience_rating": "High",
                "daily_convenience_note": "MRT, mall and hawker centre",
                "green_outdoor_rating": "Medium",
                "green_outdoor_note": "Town garden nearby",
                "crowd_vibe_rating": "Busy",
                "crowd_vibe_note": "Crowded on weekends",
                "long_term_comfort_rating": "High",
                "long_term_comfort_note": "Mature estate",
            }
        ],
        path,
    )
    return path


@pytest.fixture
def spatial_store(db_path) -> SqliteSpatialStore:
    return SqliteSpatialStore(db_path)


@pytest.fixture
def transaction_store(db_path) -> SqliteTransactionStore:
    return SqliteTransactionStore(db_path)


@pytest.fixture
def neighbourhood_store(db_path) -> SqliteNeighbourhoodStore:
    return SqliteNeighbourhoodStore(db_path)


@pytest.fixture
def settings(db_path) -> Settings:
    return Settings(
        onemap_base_url=BASE_URL,
        onemap_api_token=None,
        database_path=str(db_path),
    )


@pytest.fixture
def make_resolver(settings, spatial_store, transaction_store, neighbourhood_store):
    """Return a factory wiring an AddressResolver over the temp database."""

    def _make(
        client: OneMapClient,
        *,
        spatial: Optional[SpatialStore] = None,
        transactions: Optional[TransactionStore] = None,
        cache: Optional[TTLCache] = None,
    ) -> AddressResolver:
        containment = ContainmentResolver(spatial or spatial_store, max_concurrency=4)
        streets = StreetInferrer(transactions or transaction_store, containment, row_limit=10)
        return AddressResolver(
            Geocoder(client, max_alternates=settings.max_candidates),
            containment,
            streets,
            neighbourhood_store,
            cache=cache if cache is not None else TTLCache(settings.cache_ttl_seconds),
        )

    return _make


# ---------------------------------------------------------------------------
# Fake stores
# ---------------------------------------------------------------------------


def subzone_for(subzone_id: str, geometry: BaseGeometry, **kwargs: Any) -> Subzone:
    return Subzone(
        id=subzone_id,
        name=subzone_id.upper().replace("-", " "),
        bbox=BoundingBox(**bbox_of(geometry)),
        **kwargs,
    )


class FakeSpatialStore(SpatialStore):
    """In-memory spatial store with switchable failures.

    Attributes:
        contains_calls: subzone ids passed to :meth:`contains`, in call order.
    """

    def __init__(
        self,
        polygons: dict[str, BaseGeometry],
        *,
        point_queries: bool = True,
        fail_find: bool = False,
        fail_contains: tuple[str, ...] = (),
        fail_list: bool = False,
        planning_area_ids: Optional[dict[str, str]] = None,
    ) -> None:
        self.polygons = polygons
        self.planning_area_ids = planning_area_ids or {}
        self.point_queries = point_queries
        self.fail_find = fail_find
        self.fail_contains = set(fail_contains)
        self.fail_list = fail_list
        self.contains_calls: list[str] = []

    @property
    def supports_point_query(self) -> bool:
        return self.point_queries

    async def find_containing(self, point: Coordinate) -> list[Subzone]:
        if self.fail_find:
            raise StoreError("spatial index offline")
        target = Point(point.lng, point.lat)
        return [
            self._subzone(sid, geom)
            for sid, geom in sorted(self.polygons.items())
            if geom.contains(target)
        ]

    async def contains(self, subzone_id: str, point: Coordinate) -> bool:
        self.contains_calls.append(subzone_id)
        if subzone_id in self.fail_contains:
            raise StoreError(f"geometry for {subzone_id} is corrupt")
        return self.polygons[subzone_id].contains(Point(point.lng, point.lat))

    async def list_subzones(self) -> list[Subzone]:
        if self.fail_list:
            raise StoreError("subzones table locked")
        return [self._subzone(sid, geom) for sid, geom in sorted(self.polygons.items())]

    async def planning_area_name(self, planning_area_id: str) -> Optional[str]:
        raise StoreError("planning areas unavailable")

    def _subzone(self, subzone_id: str, geometry: BaseGeometry) -> Subzone:
        return subzone_for(
            subzone_id, geometry, planning_area_id=self.planning_area_ids.get(subzone_id)
        )


class FakeTransactionStore(TransactionStore):
    """Transaction store returning canned rows, recording each lookup."""

    def __init__(
        self,
        exact_rows: Optional[list[dict[str, Any]]] = None,
        partial_rows: Optional[list[dict[str, Any]]] = None,
        *,
        street_names: Optional[list[dict[str, Any]]] = None,
        fail: bool = False,
    ) -> None:
        self.exact_rows = exact_rows or []
        self.partial_rows = partial_rows or []
        self.street_names = street_names or []
        self.fail = fail
        self.calls: list[tuple[str, bool]] = []
        self.search_calls: list[list[str]] = []

    async def find_by_street(
        self, street_name: str, *, exact: bool, limit: int
    ) -> list[dict[str, Any]]:
        self.calls.append((street_name, exact))
        if self.fail:
            raise StoreError("transactions table missing")
        rows = self.exact_rows if exact else self.partial_rows
        return rows[:limit]

    async def search_street_names(
        self, words: list[str], *, limit: int
    ) -> list[dict[str, Any]]:
        self.search_calls.append(list(words))
        if self.fail:
            raise StoreError("transactions table missing")
        return [
            row for row in self.street_names
            if all(word.upper() in row["street_name"] for word in words)
        ][:limit]


@pytest.fixture
def fake_spatial_store():
    """Factory for :class:`FakeSpatialStore` instances."""
    return FakeSpatialStore


@pytest.fixture
def fake_transaction_store():
    """Factory for :class:`FakeTransactionStore` instances."""
    return FakeTransactionStore


@pytest.fixture
def points() -> dict[str, Coordinate]:
    return {
        "amk": AMK_POINT,
        "kallang_way": KALLANG_WAY_POINT,
        "aljunied": ALJUNIED_POINT,
        "marina": MARINA_POINT,
        "jurong": JURONG_POINT,
    }


@pytest.fixture
def kallang_polygons() -> dict[str, BaseGeometry]:
    return {"kallang-bahru": KALLANG_BAHRU, "kallang-way": KALLANG_WAY}


@pytest.fixture
def sample_neighbourhoods() -> list[Neighbourhood]:
    return [
        Neighbourhood(id="amk-central", name="Ang Mo Kio Central"),
        Neighbourhood(id="bishan-north", name="Bishan North"),
        Neighbourhood(id="bishan", name="Bishan"),
        Neighbourhood(id="tiong-bahru", name="Tiong Bahru"),
    ]
