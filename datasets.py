"""
Vector datasets: records of geodetic points split into parts.

Documents look like::

    {"Records": [{"Points": [{"Longitude": .., "Latitude": ..}, ...],
                  "Parts":  [0, 12, ...]}, ...]}

and are read from a local path or fetched over http(s).
"""

import json
import logging
from dataclasses import dataclass
from typing import Tuple

import requests

from errors import DatasetError
from geodesy import GeodeticPoint

logger = logging.getLogger(__name__)

USER_AGENT = "EllipsoidGlobe/1.0"


@dataclass(frozen=True)
class Record:
    points: Tuple[GeodeticPoint, ...]
    parts:  Tuple[int, ...]

    def part_ranges(self):
        """Yield ``(start, end)`` index pairs, the last part running to the end.

        Offsets outside the point list are clamped to it.
        """
        n = len(self.parts); count = len(self.points)
        for i, start in enumerate(self.parts):
            end = self.parts[i+1] if i < n-1 else count
            yield min(max(start, 0), count), min(max(end, 0), count)


@dataclass(frozen=True)
class VectorDataset:
    name:    str
    records: Tuple[Record, ...]

    @property
    def point_count(self):
        return sum(len(r.points) for r in self.records)


def parse_dataset(doc, name="dataset"):
    """Build a VectorDataset from an already-decoded JSON document."""
    try:
        records = []
        for rec in doc["Records"]:
            points = tuple(GeodeticPoint(float(p["Longitude"]), float(p["Latitude"]))
                           for p in rec["Points"])
            parts = tuple(int(i) for i in rec.get("Parts", (0,)))
            records.append(Record(points, parts))
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DatasetError(f"{name}: malformed dataset ({e!r})") from e
    return VectorDataset(name, tuple(records))


def _is_url(source):
    return source.startswith(("http://", "https://"))


def fetch_document(source, timeout=10.0):
    if _is_url(source):
        try:
            r = requests.get(source, timeout=timeout, headers={"User-Agent": USER_AGENT})
            r.raise_for_status()
            return r.json()
        except (requests.RequestException, ValueError) as e:
            raise DatasetError(f"could not fetch {source}: {e}") from e
    try:
        with open(source, encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, ValueError) as e:
        raise DatasetError(f"could not read {source}: {e}") from e


def load_dataset(source, name=None, timeout=10.0):
    """Fetch and parse one dataset. Any failure raises DatasetError."""
    name = name or source.rsplit("/", 1)[-1]
    ds = parse_dataset(fetch_document(source, timeout), name)
    logger.info("Loaded %s: %d records, %d points", name, len(ds.records), ds.point_count)
    return ds
