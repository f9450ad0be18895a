import pytest

from errors import SurfaceAllocationError
from surfaces import COLOR, DEPTH, SurfaceManager, physical_size


def test_physical_size_applies_pixel_ratio():
    assert physical_size(800, 600, 2, 10000) == (1600, 1200)


def test_physical_size_clamps_uniformly():
    assert physical_size(800, 600, 2, 1000) == (1000, 750)
    assert physical_size(600, 800, 2, 1000) == (750, 1000)


def test_physical_size_rounds_half_up():
    assert physical_size(101, 51, 1.5, 10000) == (152, 77)


def test_first_reconcile_allocates_color_and_depth(device):
    mgr = SurfaceManager(device, samples=4)
    state = mgr.reconcile(800, 600, 2, 10000)
    assert state.size == (1600, 1200)
    assert [e[1] for e in device.creates] == [COLOR, DEPTH]
    assert all(v[3] == 4 for v in device.live.values())
    assert state.color_view == ("view", state.color_target)
    assert state.depth_view == ("view", state.depth_target)


def test_reconcile_is_idempotent(device):
    mgr = SurfaceManager(device)
    first = mgr.reconcile(800, 600, 2, 10000)
    for _ in range(5):
        assert mgr.reconcile(800, 600, 2, 10000) is first
    assert len(device.creates) == 2
    assert mgr.allocations == 1


def test_clamped_allocation(device):
    state = SurfaceManager(device).reconcile(800, 600, 2, 1000)
    assert state.size == (1000, 750)
    assert {(w, h) for _, w, h, _ in device.live.values()} == {(1000, 750)}


def test_resize_destroys_before_creating(device):
    mgr = SurfaceManager(device)
    mgr.reconcile(800, 600, 1, 10000)
    device.log.clear()
    state = mgr.reconcile(1024, 768, 1, 10000)
    assert state.size == (1024, 768)
    assert [e[:2] for e in device.log] == [("destroy", COLOR), ("destroy", DEPTH),
                                          ("create", COLOR), ("create", DEPTH)]
    assert len(device.live) == 2


def test_logical_change_with_same_physical_size_is_noop(device):
    mgr = SurfaceManager(device)
    mgr.reconcile(800, 600, 2, 10000)
    mgr.reconcile(1600, 1200, 1, 10000)
    assert mgr.allocations == 1


@pytest.mark.parametrize("w,h,dpr", [(0, 600, 1), (800, 0, 1), (0, 0, 2), (800, 600, 0)])
def test_zero_viewport_is_deferred(device, w, h, dpr):
    mgr = SurfaceManager(device)
    assert mgr.reconcile(w, h, dpr, 10000) is None
    assert device.log == []


def test_zero_viewport_keeps_existing_targets(device):
    mgr = SurfaceManager(device)
    state = mgr.reconcile(800, 600, 1, 10000)
    assert mgr.reconcile(0, 0, 1, 10000) is state
    assert len(device.live) == 2


def test_failed_depth_allocation_releases_everything(device):
    mgr = SurfaceManager(device)
    mgr.reconcile(800, 600, 1, 10000)
    device.fail_on = DEPTH
    with pytest.raises(SurfaceAllocationError):
        mgr.reconcile(640, 480, 1, 10000)
    assert device.live == {}
    assert mgr.state is None


def test_failed_color_allocation_still_releases_old(device):
    mgr = SurfaceManager(device)
    mgr.reconcile(800, 600, 1, 10000)
    device.fail_on = COLOR
    with pytest.raises(SurfaceAllocationError):
        mgr.reconcile(640, 480, 1, 10000)
    assert device.live == {}
    # next tick retries once the device recovers
    device.fail_on = None
    assert mgr.reconcile(640, 480, 1, 10000).size == (640, 480)


def test_release(device):
    mgr = SurfaceManager(device)
    mgr.reconcile(300, 200, 1, 10000)
    mgr.release()
    assert device.live == {} and mgr.state is None
    mgr.release()
