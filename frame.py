"""
Per-frame driver.

``tick`` is called by the host's scheduler with the elapsed time and the
current display metrics, and returns the list of draws for the backend to
execute. It never touches the graphics API itself apart from surface
reconciliation through the state's device.
"""

from collections import namedtuple
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from camera import TransformGenerator
from linesets import LINE_SET_ORDER, VERTEX_SIZE, GpuLineBuffer
from surfaces import SurfaceManager, SurfaceState

MATRIX_SIZE = 4 * 16
UNIFORM_OFFSETS = {"model_view": 0, "projection": MATRIX_SIZE, "normal": 2 * MATRIX_SIZE}
UNIFORM_SIZE = 3 * MATRIX_SIZE

CLEAR_COLOR = (0.0, 0.0, 0.0, 1.0)
CLEAR_DEPTH = 1.0

DisplayMetrics = namedtuple("DisplayMetrics",
                            "logical_width logical_height device_pixel_ratio max_surface_dimension")
DrawCommand = namedtuple("DrawCommand", "name buffer vertex_count")


@dataclass
class FramePlan:
    surface:      SurfaceState
    uniform_data: bytes
    draws:        List[DrawCommand]
    clear_color:  tuple = CLEAR_COLOR
    clear_depth:  float = CLEAR_DEPTH


@dataclass
class RendererState:
    surfaces:   SurfaceManager
    transforms: TransformGenerator
    line_buffers: Dict[str, GpuLineBuffer] = field(default_factory=dict)
    uniform_buffer: Optional[object] = None
    frames: int = 0


def pack_uniforms(ts):
    """Three column-major float32 mat4s at offsets 0, 64 and 128."""
    block = bytearray(UNIFORM_SIZE)
    for name, offset in UNIFORM_OFFSETS.items():
        m = np.asarray(getattr(ts, name), dtype=np.float32)
        block[offset:offset + MATRIX_SIZE] = m.T.tobytes()
    return bytes(block)


def draw_commands(line_buffers):
    draws = []
    for name in LINE_SET_ORDER:
        buf = line_buffers.get(name)
        if buf is None:
            continue
        draws.append(DrawCommand(name, buf.handle, buf.size // VERTEX_SIZE))
    return draws


def tick(state, elapsed, display):
    """Plan one frame. Returns None while the surface is not ready."""
    surface = state.surfaces.reconcile(display.logical_width, display.logical_height,
                                       display.device_pixel_ratio, display.max_surface_dimension)
    if surface is None:
        return None
    ts = state.transforms.transforms(elapsed, surface.aspect)
    state.frames += 1
    return FramePlan(surface, pack_uniforms(ts), draw_commands(state.line_buffers))
