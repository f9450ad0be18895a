"""
Geodetic → Cartesian projection onto a WGS84-flattened ellipsoid.

World space has the polar axis on +Y, longitude 0 on -X and
longitude 90 along +Z; the semi-major axis is normalised to 1.0.
"""

import math
from collections import namedtuple

import numpy as np

EARTH_RADIUS     = 1.0
EARTH_FLATTENING = 1.0 / 298.257223563
EARTH_FF         = (1.0 - EARTH_FLATTENING) ** 2
POLAR_RADIUS     = math.sqrt(EARTH_FF)

GeodeticPoint  = namedtuple("GeodeticPoint", "longitude latitude")
CartesianPoint = namedtuple("CartesianPoint", "x y z")


def project(point, height=0.0):
    """Project a GeodeticPoint ``height`` units above the ellipsoid surface."""
    lngr = math.radians(point.longitude)
    latr = math.radians(point.latitude)
    clat = math.cos(latr); slat = math.sin(latr)
    c = 1.0 / math.sqrt(clat*clat + EARTH_FF*slat*slat)
    s = c * EARTH_FF
    x = (EARTH_RADIUS*c + height) * clat * math.cos(lngr)
    y = (EARTH_RADIUS*c + height) * clat * math.sin(lngr)
    z = (EARTH_RADIUS*s + height) * slat
    return CartesianPoint(-x, z, y)


def project_array(lons, lats, heights=0.0):
    """Vectorised :func:`project`. Returns an ``(N, 3)`` float64 array."""
    lngr = np.radians(np.asarray(lons, dtype=np.float64))
    latr = np.radians(np.asarray(lats, dtype=np.float64))
    h    = np.broadcast_to(np.asarray(heights, dtype=np.float64), lngr.shape)
    clat = np.cos(latr); slat = np.sin(latr)
    c = 1.0 / np.sqrt(clat*clat + EARTH_FF*slat*slat)
    s = c * EARTH_FF
    x = (EARTH_RADIUS*c + h) * clat * np.cos(lngr)
    y = (EARTH_RADIUS*c + h) * clat * np.sin(lngr)
    z = (EARTH_RADIUS*s + h) * slat
    return np.stack((-x, z, y), axis=-1)
