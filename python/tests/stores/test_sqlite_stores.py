"""Tests for the SQLite reference-data stores against the temp database."""
from __future__ import annotations

import sqlite3

import pytest

from neighbourly.stores.base import StoreError
from neighbourly.stores.schema import save_transactions
from neighbourly.stores.sqlite import (
    SqliteNeighbourhoodStore,
    SqliteSpatialStore,
    SqliteTransactionStore,
)


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


def test_bbox_columns_are_derived_from_geometry(db_path):
    conn = sqlite3.connect(db_path)
    row = conn.execute(
        "SELECT min_lat, max_lat, min_lng, max_lng FROM subzones WHERE id = 'kallang-way'"
    ).fetchone()
    conn.close()

    assert row == (1.30, 1.32, 103.90, 103.92)


# ---------------------------------------------------------------------------
# SqliteSpatialStore
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_subzones_ordered_by_id(spatial_store):
    subzones = await spatial_store.list_subzones()

    assert [s.id for s in subzones] == [
        "aljunied",
        "ang-mo-kio-town-centre",
        "kallang-bahru",
        "kallang-way",
        "marina-south",
    ]
    assert all(s.bbox is not None for s in subzones)


@pytest.mark.asyncio
async def test_find_containing_uses_polygon_not_box(spatial_store, points):
    found = await spatial_store.find_containing(points["kallang_way"])

    assert [s.id for s in found] == ["kallang-way"]


@pytest.mark.asyncio
async def test_contains(spatial_store, points):
    assert await spatial_store.contains("kallang-way", points["kallang_way"]) is True
    assert await spatial_store.contains("kallang-bahru", points["kallang_way"]) is False
    assert await spatial_store.contains("no-such-subzone", points["kallang_way"]) is False


@pytest.mark.asyncio
async def test_point_queries_can_be_disabled(db_path, points):
    store = SqliteSpatialStore(db_path, point_queries=False)

    assert store.supports_point_query is False
    with pytest.raises(StoreError):
        await store.find_containing(points["amk"])
    with pytest.raises(StoreError):
        await store.contains("ang-mo-kio-town-centre", points["amk"])


@pytest.mark.asyncio
async def test_planning_area_name(spatial_store):
    assert await spatial_store.planning_area_name("ang-mo-kio") == "ANG MO KIO"
    assert await spatial_store.planning_area_name("nowhere") is None


@pytest.mark.asyncio
async def test_missing_database_raises_store_error(tmp_path):
    store = SqliteSpatialStore(tmp_path / "empty.db")

    with pytest.raises(StoreError):
        await store.list_subzones()


# ---------------------------------------------------------------------------
# SqliteTransactionStore
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_exact_street_match_excludes_null_coordinates(transaction_store):
    rows = await transaction_store.find_by_street("lorong 30 geylang", exact=True, limit=10)

    assert len(rows) == 1
    assert rows[0]["latitude"] == 1.315


@pytest.mark.asyncio
async def test_exact_street_match_ignores_repeated_spaces(db_path):
    save_transactions([("12", " LORONG  39   GEYLANG ", 1.316, 103.886, "geylang-east")], db_path)
    store = SqliteTransactionStore(db_path)

    rows = await store.find_by_street("Lorong 39  Geylang", exact=True, limit=10)

    assert [r["latitude"] for r in rows] == [1.316]


@pytest.mark.asyncio
async def test_partial_street_match_respects_limit(transaction_store):
    rows = await transaction_store.find_by_street("Ang Mo Kio", exact=False, limit=1)

    assert [r["street_name"] for r in rows] == ["ANG MO KIO AVE 3"]


@pytest.mark.asyncio
async def test_like_wildcards_are_escaped(db_path):
    save_transactions([("1", "JALAN_BESAR", 1.306, 103.856, None)], db_path)
    store = SqliteTransactionStore(db_path)

    assert await store.find_by_street("%", exact=False, limit=10) == []
    assert await store.find_by_street("_", exact=False, limit=10) != []
    assert await store.find_by_street("N_B", exact=False, limit=10) != []
    assert await store.find_by_street("N%B", exact=False, limit=10) == []


@pytest.mark.asyncio
async def test_search_street_names_requires_every_word(transaction_store):
    rows = await transaction_store.search_street_names(["ang", "ave"], limit=10)

    assert [r["street_name"] for r in rows] == ["ANG MO KIO AVE 10", "ANG MO KIO AVE 3"]
    assert await transaction_store.search_street_names(["ave", "lorong"], limit=10) == []
    assert await transaction_store.search_street_names([], limit=10) == []


# ---------------------------------------------------------------------------
# SqliteNeighbourhoodStore
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_get_and_list_neighbourhoods(neighbourhood_store):
    amk = await neighbourhood_store.get_neighbourhood("amk-central")
    assert amk.parent_subzone_id == "ang-mo-kio-town-centre"
    assert amk.one_liner == "Hawker-dense town centre"
    assert await neighbourhood_store.get_neighbourhood("missing") is None

    listed = await neighbourhood_store.list_neighbourhoods()
    assert [n.id for n in listed] == ["amk-central", "geylang-east", "kallang-bahru", "kallang-way"]


@pytest.mark.asyncio
async def test_sealed_neighbourhood_preferred(db_path, neighbourhood_store):
    conn = sqlite3.connect(db_path)
    conn.execute(
        "INSERT INTO neighbourhoods VALUES ('amk-cluster', 'AMK Cluster', NULL, NULL, 'cluster', 'ang-mo-kio')"
    )
    conn.execute(
        "INSERT INTO neighbourhood_subzones VALUES ('ang-mo-kio-town-centre', 'amk-cluster')"
    )
    conn.commit()
    conn.close()

    found = await neighbourhood_store.neighbourhood_for_subzone("ang-mo-kio-town-centre")

    assert found.id == "amk-central"


@pytest.mark.asyncio
async def test_living_notes_rows(neighbourhood_store):
    rows = await neighbourhood_store.list_living_notes()

    assert len(rows) == 1
    assert rows[0]["neighbourhood_name"] == "Ang Mo Kio Central"
    assert rows[0]["daily_convenience_rating"] == "High"


@pytest.mark.asyncio
async def test_planning_areas_for_neighbourhoods(neighbourhood_store):
    areas = await neighbourhood_store.planning_areas_for_neighbourhoods(
        ["amk-central", "geylang-east", "missing"]
    )

    assert areas == {
        "amk-central": {"id": "ang-mo-kio", "name": "ANG MO KIO"},
        "geylang-east": {"id": "geylang", "name": "GEYLANG"},
    }
    assert await neighbourhood_store.planning_areas_for_neighbourhoods([]) == {}
