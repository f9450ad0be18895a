"""
Camera transforms: a slowly precessing, tilted, spinning globe viewed
from a fixed distance.

Matrices are row-major numpy arrays acting on column vectors
(``M @ v``); upload them transposed for GLSL's column-major layout.
"""

import math
from collections import namedtuple

import numpy as np

ROTATION_SPEED  = 2 * math.pi / 86400     # rad per simulated second (one day)
AXIS_SPEED      = ROTATION_SPEED / 365    # precession, one turn per year
TIME_SPEEDUP    = 1000.0
AXIAL_TILT      = math.radians(23.5)
CAMERA_DISTANCE = 15.0
FOV_Y           = math.pi / 20
Z_NEAR          = 0.1
Z_FAR           = 100.0

TransformState = namedtuple("TransformState", "model_view projection normal")


# ═══════════════════════════════════════════════════════════════
# MATRIX HELPERS
# ═══════════════════════════════════════════════════════════════
def translation(x, y, z):
    m = np.identity(4)
    m[:3, 3] = (x, y, z)
    return m

def rotation_y(angle):
    c = math.cos(angle); s = math.sin(angle)
    m = np.identity(4)
    m[0, 0] = c;  m[0, 2] = s
    m[2, 0] = -s; m[2, 2] = c
    return m

def rotation_z(angle):
    c = math.cos(angle); s = math.sin(angle)
    m = np.identity(4)
    m[0, 0] = c; m[0, 1] = -s
    m[1, 0] = s; m[1, 1] = c
    return m

def perspective(fovy, aspect, near, far):
    """OpenGL clip-space perspective (depth mapped to -1..1)."""
    f = 1.0 / math.tan(fovy / 2)
    m = np.zeros((4, 4))
    m[0, 0] = f / aspect
    m[1, 1] = f
    m[2, 2] = (far + near) / (near - far)
    m[2, 3] = 2 * far * near / (near - far)
    m[3, 2] = -1.0
    return m


# ═══════════════════════════════════════════════════════════════
# TRANSFORM GENERATOR
# ═══════════════════════════════════════════════════════════════
class TransformGenerator:
    def __init__(self, time_speedup=TIME_SPEEDUP, camera_distance=CAMERA_DISTANCE,
                 axial_tilt=AXIAL_TILT, fovy=FOV_Y, near=Z_NEAR, far=Z_FAR):
        self.time_speedup = time_speedup
        self.camera_distance = camera_distance
        self.axial_tilt = axial_tilt
        self.fovy = fovy; self.near = near; self.far = far

    def compute_view(self, t):
        """View matrix ``t`` real seconds after start.

        Each rotation acts in the frame left by the previous one:
        precession about Y (+90° alignment), axial tilt about Z, then the
        daily spin about the tilted Y axis.
        """
        view = translation(0, 0, -self.camera_distance)
        view = view @ rotation_y(AXIS_SPEED * self.time_speedup * t + math.pi / 2)
        view = view @ rotation_z(self.axial_tilt)
        view = view @ rotation_y(ROTATION_SPEED * self.time_speedup * t)
        return view

    @staticmethod
    def compute_normal(view):
        """Inverse-transpose of the rotational part of ``view``."""
        m = np.array(view, dtype=np.float64)
        m[:3, 3] = 0.0
        return np.linalg.inv(m).T

    def compute_projection(self, aspect):
        return perspective(self.fovy, aspect, self.near, self.far)

    def transforms(self, t, aspect):
        view = self.compute_view(t)
        return TransformState(view, self.compute_projection(aspect), self.compute_normal(view))
