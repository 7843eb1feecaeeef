"""SQLite-backed implementations of the reference-data stores.

Reads go through pandas (``read_sql_query``) on a fresh connection per call
and run in a worker thread, so the event loop never blocks on disk I/O.
Polygon containment is evaluated with shapely on the WKB geometry column.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from shapely import wkb
from shapely.geometry import Point

from neighbourly.resolver.models import BoundingBox, Coordinate, Neighbourhood, Subzone

from .base import NeighbourhoodStore, SpatialStore, StoreError, TransactionStore

logger = logging.getLogger(__name__)

_SUBZONE_COLUMNS = "id, name, planning_area_id, region, min_lat, max_lat, min_lng, max_lng"

# Collapses each run of spaces in street_name to one, as normalize_input does.
_STREET_NAME_COLLAPSED = (
    "REPLACE(REPLACE(REPLACE(TRIM(street_name), ' ', ' ' || CHAR(1)), "
    "CHAR(1) || ' ', ''), CHAR(1), '')"
)


def _text(value: Any) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    return str(value)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class _SqliteReader:
    def __init__(self, db_path: Path | str) -> None:
        self.db_path = db_path

    def _read(self, sql: str, params: tuple = ()) -> pd.DataFrame:
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot open {self.db_path}: {exc}") from exc
        try:
            return pd.read_sql_query(sql, conn, params=params)
        except (sqlite3.Error, pd.errors.DatabaseError) as exc:
            raise StoreError(str(exc)) from exc
        finally:
            conn.close()

    async def _query(self, sql: str, params: tuple = ()) -> pd.DataFrame:
        return await asyncio.to_thread(self._read, sql, params)


def _row_to_subzone(row: pd.Series) -> Subzone:
    bbox = None
    if not any(pd.isna(row[col]) for col in ("min_lat", "max_lat", "min_lng", "max_lng")):
        bbox = BoundingBox(
            min_lat=float(row["min_lat"]),
            max_lat=float(row["max_lat"]),
            min_lng=float(row["min_lng"]),
            max_lng=float(row["max_lng"]),
        )
    return Subzone(
        id=str(row["id"]),
        name=str(row["name"]),
        planning_area_id=_text(row["planning_area_id"]),
        region=_text(row["region"]),
        bbox=bbox,
    )


def _row_to_neighbourhood(row: pd.Series) -> Neighbourhood:
    return Neighbourhood(
        id=str(row["id"]),
        name=str(row["name"]),
        one_liner=_text(row["one_liner"]),
        parent_subzone_id=_text(row["parent_subzone_id"]),
        type=_text(row["type"]),
        planning_area_id=_text(row["planning_area_id"]),
    )


# ---------------------------------------------------------------------------
# Spatial store
# ---------------------------------------------------------------------------


class SqliteSpatialStore(_SqliteReader, SpatialStore):
    """Subzone polygons stored as WKB in the ``subzones`` table."""

    def __init__(self, db_path: Path | str, *, point_queries: bool = True) -> None:
        super().__init__(db_path)
        self._point_queries = point_queries

    @property
    def supports_point_query(self) -> bool:
        return self._point_queries

    async def find_containing(self, point: Coordinate) -> list[Subzone]:
        if not self._point_queries:
            raise StoreError("Point-in-polygon queries are disabled")
        df = await self._query(
            f"SELECT {_SUBZONE_COLUMNS}, geometry FROM subzones "
            "WHERE ? BETWEEN min_lat AND max_lat AND ? BETWEEN min_lng AND max_lng "
            "AND geometry IS NOT NULL ORDER BY id",
            (point.lat, point.lng),
        )
        target = Point(point.lng, point.lat)
        return [
            _row_to_subzone(row)
            for _, row in df.iterrows()
            if wkb.loads(bytes(row["geometry"])).contains(target)
        ]

    async def contains(self, subzone_id: str, point: Coordinate) -> bool:
        if not self._point_queries:
            raise StoreError("Point-in-polygon queries are disabled")
        df = await self._query(
            "SELECT geometry FROM subzones WHERE id = ?", (subzone_id,)
        )
        if df.empty:
            return False
        geometry = df.iloc[0]["geometry"]
        if geometry is None:
            raise StoreError(f"Subzone {subzone_id} has no geometry")
        return wkb.loads(bytes(geometry)).contains(Point(point.lng, point.lat))

    async def list_subzones(self) -> list[Subzone]:
        df = await self._query(f"SELECT {_SUBZONE_COLUMNS} FROM subzones ORDER BY id")
        return [_row_to_subzone(row) for _, row in df.iterrows()]

    async def planning_area_name(self, planning_area_id: str) -> Optional[str]:
        df = await self._query(
            "SELECT name FROM planning_areas WHERE id = ?", (planning_area_id,)
        )
        if df.empty:
            return None
        return _text(df.iloc[0]["name"])


# ---------------------------------------------------------------------------
# Transaction store
# ---------------------------------------------------------------------------


class SqliteTransactionStore(_SqliteReader, TransactionStore):
    """Historical resale transactions in ``raw_resale_transactions``."""

    async def find_by_street(
        self, street_name: str, *, exact: bool, limit: int
    ) -> list[dict[str, Any]]:
        if exact:
            where = f"UPPER({_STREET_NAME_COLLAPSED}) = UPPER(?)"
            param = " ".join(street_name.split())
        else:
            where = "street_name LIKE ? ESCAPE '\\'"
            param = f"%{_escape_like(street_name.strip())}%"
        df = await self._query(
            "SELECT latitude, longitude, street_name FROM raw_resale_transactions "
            f"WHERE {where} AND latitude IS NOT NULL AND longitude IS NOT NULL "
            "ORDER BY id LIMIT ?",
            (param, limit),
        )
        return df.to_dict("records")

    async def search_street_names(
        self, words: list[str], *, limit: int
    ) -> list[dict[str, Any]]:
        if not words:
            return []
        clauses = " AND ".join("street_name LIKE ? ESCAPE '\\'" for _ in words)
        params = tuple(f"%{_escape_like(word)}%" for word in words)
        df = await self._query(
            "SELECT DISTINCT street_name, neighbourhood_id FROM raw_resale_transactions "
            f"WHERE {clauses} AND street_name IS NOT NULL AND neighbourhood_id IS NOT NULL "
            "ORDER BY street_name, neighbourhood_id LIMIT ?",
            params + (limit,),
        )
        return df.to_dict("records")


# ---------------------------------------------------------------------------
# Neighbourhood store
# ---------------------------------------------------------------------------


class SqliteNeighbourhoodStore(_SqliteReader, NeighbourhoodStore):
    """The curated ``neighbourhoods`` catalogue and its subzone links."""

    async def neighbourhood_for_subzone(self, subzone_id: str) -> Optional[Neighbourhood]:
        df = await self._query("""
            SELECT n.id, n.name, n.one_liner, n.parent_subzone_id, n.type, n.planning_area_id
            FROM neighbourhoods n
            LEFT JOIN neighbourhood_subzones l ON l.neighbourhood_id = n.id
            WHERE n.parent_subzone_id = ? OR l.subzone_id = ?
            ORDER BY CASE WHEN n.type = 'sealed' THEN 0 ELSE 1 END, n.id
            LIMIT 1
        """, (subzone_id, subzone_id))
        if df.empty:
            return None
        return _row_to_neighbourhood(df.iloc[0])

    async def get_neighbourhood(self, neighbourhood_id: str) -> Optional[Neighbourhood]:
        df = await self._query(
            "SELECT id, name, one_liner, parent_subzone_id, type, planning_area_id "
            "FROM neighbourhoods WHERE id = ?",
            (neighbourhood_id,),
        )
        if df.empty:
            return None
        return _row_to_neighbourhood(df.iloc[0])

    async def list_neighbourhoods(self) -> list[Neighbourhood]:
        df = await self._query(
            "SELECT id, name, one_liner, parent_subzone_id, type, planning_area_id "
            "FROM neighbourhoods ORDER BY id"
        )
        return [_row_to_neighbourhood(row) for _, row in df.iterrows()]

    async def list_living_notes(self) -> list[dict[str, Any]]:
        df = await self._query(
            "SELECT * FROM neighbourhood_living_notes ORDER BY neighbourhood_name"
        )
        return df.to_dict("records")

    async def planning_areas_for_neighbourhoods(
        self, neighbourhood_ids: list[str]
    ) -> dict[str, dict[str, str]]:
        if not neighbourhood_ids:
            return {}
        placeholders = ", ".join("?" for _ in neighbourhood_ids)
        df = await self._query(
            "SELECT n.id AS neighbourhood_id, p.id AS planning_area_id, p.name AS planning_area_name "
            "FROM neighbourhoods n JOIN planning_areas p ON p.id = n.planning_area_id "
            f"WHERE n.id IN ({placeholders})",
            tuple(neighbourhood_ids),
        )
        return {
            str(row["neighbourhood_id"]): {
                "id": str(row["planning_area_id"]),
                "name": str(row["planning_area_name"]),
            }
            for _, row in df.iterrows()
        }
