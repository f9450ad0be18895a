"""
Line-set construction: segment generators feeding a flat line-list
vertex buffer of (x, y, z, 1) float32 vertices, two per segment.
"""

import logging
import math
from collections import OrderedDict
from dataclasses import dataclass

import numpy as np

from geodesy import GeodeticPoint, project_array

logger = logging.getLogger(__name__)

VERTEX_SIZE = 4 * 4   # 4 floats per vertex
GRID_STEP = 15.0
GRID_SUBDIVISION = 1.0
AXIS_HEIGHT = 1.0

# Draw order of the prebuilt line sets
LINE_SET_ORDER = ("coastlines", "countries", "axis", "graticule")


@dataclass(frozen=True)
class LineVertexBuffer:
    vertices: np.ndarray   # (N, 4) float32, read-only

    def __post_init__(self):
        self.vertices.setflags(write=False)

    @property
    def vertex_count(self):
        return self.vertices.size // 4

    @property
    def segment_count(self):
        return self.vertex_count // 2

    @property
    def nbytes(self):
        return self.vertices.nbytes


@dataclass(frozen=True)
class GpuLineBuffer:
    handle: object
    size:   int      # bytes

    @property
    def segment_count(self):
        return self.size // (2 * VERTEX_SIZE)


# ── Segment sources ─────────────────────────────────────────────
def dataset_segments(dataset):
    """Consecutive point pairs within every part of every record."""
    for record in dataset.records:
        points = record.points
        for start, end in record.part_ranges():
            for i in range(start, end - 1):
                yield points[i], points[i+1], 0.0


def debug_axis_segments():
    yield GeodeticPoint(0.0, 90.0), GeodeticPoint(0.0, -90.0), AXIS_HEIGHT


def _steps(start, stop, step):
    n = int(math.ceil((stop - start) / step - 1e-9))
    return [start + i*step for i in range(max(n, 0))]


def graticule_segments(step=GRID_STEP, subdivision=GRID_SUBDIVISION):
    """Latitude circles and meridians every ``step`` degrees, as short chords."""
    for lat in _steps(-90.0 + step, 90.0, step):
        for lng in _steps(-180.0, 180.0, subdivision):
            yield GeodeticPoint(lng, lat), GeodeticPoint(min(lng+subdivision, 180.0), lat), 0.0
    for lng in _steps(-180.0, 180.0, step):
        for lat in _steps(-90.0, 90.0, subdivision):
            yield GeodeticPoint(lng, lat), GeodeticPoint(lng, min(lat+subdivision, 90.0)), 0.0


# ── Builder ─────────────────────────────────────────────────────
def build_line_vertices(segments):
    """Project every ``(from, to, height)`` triple into a LineVertexBuffer."""
    lons = []; lats = []; heights = []
    for frm, to, height in segments:
        lons += (frm.longitude, to.longitude)
        lats += (frm.latitude, to.latitude)
        heights += (height, height)
    verts = np.ones((len(lons), 4), dtype=np.float64)
    if lons:
        verts[:, :3] = project_array(lons, lats, heights)
    return LineVertexBuffer(verts.astype(np.float32))


def build_line_sets(coastlines, countries, step=GRID_STEP, subdivision=GRID_SUBDIVISION):
    """All four line sets in draw order."""
    sets = OrderedDict()
    sets["coastlines"] = build_line_vertices(dataset_segments(coastlines))
    sets["countries"]  = build_line_vertices(dataset_segments(countries))
    sets["axis"]       = build_line_vertices(debug_axis_segments())
    sets["graticule"]  = build_line_vertices(graticule_segments(step, subdivision))
    for name, lv in sets.items():
        logger.info("Line set %-10s %7d segments", name, lv.segment_count)
    return sets


def upload_line_set(device, vertices):
    """Copy a LineVertexBuffer into a new GPU vertex buffer."""
    handle = device.create_vertex_buffer(vertices.vertices.tobytes())
    return GpuLineBuffer(handle, vertices.nbytes)
