"""
Viewport-adaptive render targets.

Every frame the host reports its logical size and pixel ratio; the manager
derives a physical size clamped to the device's maximum surface dimension
and reallocates the multisampled colour target and the depth target only
when that size changes.

The device is anything providing ``create_texture(width, height, kind,
samples)``, ``create_view(texture)`` and ``destroy_texture(texture)``.
"""

import logging
import math
from contextlib import ExitStack
from dataclasses import dataclass

logger = logging.getLogger(__name__)

COLOR = "color"
DEPTH = "depth"


@dataclass(frozen=True)
class SurfaceState:
    physical_width:  int
    physical_height: int
    color_target: object
    depth_target: object
    color_view:   object
    depth_view:   object

    @property
    def size(self):
        return self.physical_width, self.physical_height

    @property
    def aspect(self):
        return self.physical_width / self.physical_height


def _round(v):
    return int(math.floor(v + 0.5))


def physical_size(logical_width, logical_height, device_pixel_ratio, max_dimension):
    """Physical pixel size, uniformly scaled down to fit ``max_dimension``."""
    raw_w = logical_width * device_pixel_ratio
    raw_h = logical_height * device_pixel_ratio
    if raw_w <= 0 or raw_h <= 0:
        return 0, 0
    scale = min(1.0, max_dimension / raw_w, max_dimension / raw_h)
    return _round(scale * raw_w), _round(scale * raw_h)


class SurfaceManager:
    def __init__(self, device, samples=4):
        self.device  = device
        self.samples = samples
        self.state   = None
        self.allocations = 0

    def reconcile(self, logical_width, logical_height, device_pixel_ratio, max_dimension):
        """Bring the render targets in line with the display. Idempotent.

        Returns the current SurfaceState, or None while nothing has been
        allocated yet (zero-sized layouts are deferred, not errors).
        """
        w, h = physical_size(logical_width, logical_height, device_pixel_ratio, max_dimension)
        if w <= 0 or h <= 0:
            return self.state
        if self.state is not None and self.state.size == (w, h):
            return self.state
        self._reallocate(w, h)
        return self.state

    def _reallocate(self, w, h):
        old = self.state
        self.state = None
        if old is not None:
            logger.debug("Releasing %dx%d render targets", *old.size)
            self._destroy(old.color_target, old.depth_target)

        dev = self.device
        with ExitStack() as stack:
            color = dev.create_texture(w, h, COLOR, self.samples)
            stack.callback(dev.destroy_texture, color)
            depth = dev.create_texture(w, h, DEPTH, self.samples)
            stack.callback(dev.destroy_texture, depth)
            state = SurfaceState(w, h, color, depth, dev.create_view(color), dev.create_view(depth))
            stack.pop_all()

        self.state = state
        self.allocations += 1
        logger.debug("Allocated %dx%d render targets (%d samples)", w, h, self.samples)

    def _destroy(self, color, depth):
        try:
            self.device.destroy_texture(color)
        finally:
            self.device.destroy_texture(depth)

    def release(self):
        if self.state is not None:
            old, self.state = self.state, None
            self._destroy(old.color_target, old.depth_target)
