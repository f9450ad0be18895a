import pytest

from errors import SurfaceAllocationError


class FakeDevice:
    """Records every allocation; handles are plain integers."""

    def __init__(self, max_surface_dimension=10000, fail_on=None):
        self.max_surface_dimension = max_surface_dimension
        self.fail_on = fail_on       # kind whose next create_texture raises
        self.next_id = 1
        self.live = {}
        self.log = []
        self.buffers = {}
        self.writes = []

    def _id(self):
        i = self.next_id; self.next_id += 1
        return i

    def create_texture(self, width, height, kind, samples):
        if kind == self.fail_on:
            self.log.append(("fail", kind, width, height))
            raise SurfaceAllocationError(f"no memory for {kind}")
        tid = self._id()
        self.live[tid] = (kind, width, height, samples)
        self.log.append(("create", kind, width, height))
        return tid

    def create_view(self, texture):
        return ("view", texture)

    def destroy_texture(self, texture):
        kind = self.live.pop(texture)[0]
        self.log.append(("destroy", kind))

    def create_vertex_buffer(self, data):
        bid = self._id()
        self.buffers[bid] = data
        return bid

    def write_buffer(self, buf, offset, data):
        self.writes.append((buf, offset, data))

    @property
    def creates(self):
        return [e for e in self.log if e[0] == "create"]


@pytest.fixture
def device():
    return FakeDevice()
