"""Reference-data database schema.

Tables:
  planning_areas              id, name, region
  subzones                    id, name, planning_area_id, region,
                              min_lat/max_lat/min_lng/max_lng  (bbox, REAL),
                              geometry BLOB (WKB, lng/lat order)
  neighbourhoods              id, name, one_liner, parent_subzone_id, type,
                              planning_area_id
  neighbourhood_subzones      subzone_id (unique) -> neighbourhood_id
  raw_resale_transactions     street_name, block, latitude, longitude,
                              neighbourhood_id
  neighbourhood_living_notes  neighbourhood_name + five rating/note pairs

The bbox columns are always derived from the geometry on insert, so every
point inside a polygon is inside its box.
"""

import sqlite3
from pathlib import Path
from typing import Iterable, Optional

from shapely.geometry.base import BaseGeometry

from neighbourly.geometry import bbox_of

LIVING_NOTE_DIMENSIONS = (
    "noise_density",
    "daily_convenience",
    "green_outdoor",
    "crowd_vibe",
    "long_term_comfort",
)


def init_db(db_path: Path | str) -> None:
    notes_columns = ",\n".join(
        f"            {dim}_rating TEXT,\n            {dim}_note TEXT"
        for dim in LIVING_NOTE_DIMENSIONS
    )
    conn = sqlite3.connect(db_path)
    conn.executescript(f"""
        CREATE TABLE IF NOT EXISTS planning_areas (
            id     TEXT PRIMARY KEY,
            name   TEXT NOT NULL,
            region TEXT
        );

        CREATE TABLE IF NOT EXISTS subzones (
            id               TEXT PRIMARY KEY,
            name             TEXT NOT NULL,
            planning_area_id TEXT,
            region           TEXT,
            min_lat          REAL,
            max_lat          REAL,
            min_lng          REAL,
            max_lng          REAL,
            geometry         BLOB
        );
        CREATE INDEX IF NOT EXISTS idx_subzones_bbox
            ON subzones (min_lat, max_lat, min_lng, max_lng);

        CREATE TABLE IF NOT EXISTS neighbourhoods (
            id                TEXT PRIMARY KEY,
            name              TEXT NOT NULL,
            one_liner         TEXT,
            parent_subzone_id TEXT,
            type              TEXT,
            planning_area_id  TEXT
        );

        CREATE TABLE IF NOT EXISTS neighbourhood_subzones (
            subzone_id       TEXT PRIMARY KEY,
            neighbourhood_id TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS raw_resale_transactions (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            block            TEXT,
            street_name      TEXT,
            latitude         REAL,
            longitude        REAL,
            neighbourhood_id TEXT
        );
        CREATE INDEX IF NOT EXISTS idx_resale_street
            ON raw_resale_transactions (street_name COLLATE NOCASE);

        CREATE TABLE IF NOT EXISTS neighbourhood_living_notes (
            neighbourhood_name TEXT PRIMARY KEY,
{notes_columns}
        );
    """)
    conn.commit()
    conn.close()


def save_planning_areas(
    rows: Iterable[tuple[str, str, Optional[str]]], db_path: Path | str
) -> None:
    """Insert ``(id, name, region)`` rows."""
    conn = sqlite3.connect(db_path)
    conn.executemany(
        "INSERT OR REPLACE INTO planning_areas (id, name, region) VALUES (?, ?, ?)",
        list(rows),
    )
    conn.commit()
    conn.close()


def save_subzones(
    rows: Iterable[tuple[str, str, Optional[str], Optional[str], BaseGeometry]],
    db_path: Path | str,
) -> None:
    """Insert ``(id, name, planning_area_id, region, geometry)`` rows.

    The bounding box is computed from *geometry* here and nowhere else.
    """
    records = []
    for subzone_id, name, planning_area_id, region, geom in rows:
        box = bbox_of(geom)
        records.append((
            subzone_id, name, planning_area_id, region,
            box["min_lat"], box["max_lat"], box["min_lng"], box["max_lng"],
            geom.wkb,
        ))
    conn = sqlite3.connect(db_path)
    conn.executemany("""
        INSERT OR REPLACE INTO subzones
            (id, name, planning_area_id, region,
             min_lat, max_lat, min_lng, max_lng, geometry)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
    """, records)
    conn.commit()
    conn.close()


def save_neighbourhoods(
    rows: Iterable[tuple[str, str, Optional[str], Optional[str], Optional[str], Optional[str]]],
    db_path: Path | str,
) -> None:
    """Insert ``(id, name, one_liner, parent_subzone_id, type, planning_area_id)`` rows."""
    conn = sqlite3.connect(db_path)
    conn.executemany("""
        INSERT OR REPLACE INTO neighbourhoods
            (id, name, one_liner, parent_subzone_id, type, planning_area_id)
        VALUES (?, ?, ?, ?, ?, ?)
    """, list(rows))
    conn.commit()
    conn.close()


def link_subzones(rows: Iterable[tuple[str, str]], db_path: Path | str) -> None:
    """Insert ``(subzone_id, neighbourhood_id)`` links for aggregated neighbourhoods."""
    conn = sqlite3.connect(db_path)
    conn.executemany(
        "INSERT OR REPLACE INTO neighbourhood_subzones (subzone_id, neighbourhood_id) VALUES (?, ?)",
        list(rows),
    )
    conn.commit()
    conn.close()


def save_transactions(
    rows: Iterable[tuple[Optional[str], str, Optional[float], Optional[float], Optional[str]]],
    db_path: Path | str,
) -> None:
    """Insert ``(block, street_name, latitude, longitude, neighbourhood_id)`` rows."""
    conn = sqlite3.connect(db_path)
    conn.executemany("""
        INSERT INTO raw_resale_transactions
            (block, street_name, latitude, longitude, neighbourhood_id)
        VALUES (?, ?, ?, ?, ?)
    """, list(rows))
    conn.commit()
    conn.close()


def save_living_notes(rows: Iterable[dict], db_path: Path | str) -> None:
    """Insert living-notes rows given as dicts keyed by column name."""
    columns = ["neighbourhood_name"] + [
        f"{dim}_{part}" for dim in LIVING_NOTE_DIMENSIONS for part in ("rating", "note")
    ]
    placeholders = ", ".join("?" for _ in columns)
    conn = sqlite3.connect(db_path)
    conn.executemany(
        f"INSERT OR REPLACE INTO neighbourhood_living_notes ({', '.join(columns)}) "
        f"VALUES ({placeholders})",
        [tuple(row.get(col) for col in columns) for row in rows],
    )
    conn.commit()
    conn.close()
