import numpy as np
import pytest

from datasets import Record, VectorDataset
from geodesy import GeodeticPoint as P, project
from linesets import (LINE_SET_ORDER, VERTEX_SIZE, GpuLineBuffer, build_line_sets, build_line_vertices,
                      dataset_segments, debug_axis_segments, graticule_segments, upload_line_set)


def dataset(*records):
    return VectorDataset("test", tuple(records))


def record(n, parts):
    return Record(tuple(P(float(i), float(i)) for i in range(n)), tuple(parts))


def test_parts_are_segmented_independently():
    segs = list(dataset_segments(dataset(record(5, [0, 3]))))
    pairs = [(a.longitude, b.longitude) for a, b, _ in segs]
    assert pairs == [(0, 1), (1, 2), (3, 4)]
    assert all(h == 0.0 for _, _, h in segs)


def test_multi_part_record_vertex_count():
    lv = build_line_vertices(dataset_segments(dataset(record(5, [0, 3]), record(2, [0]))))
    assert lv.segment_count == 4
    assert lv.vertex_count == 8


@pytest.mark.parametrize("n,parts,expected", [(4, [0, 3], 2), (3, [0, 1, 2], 0), (1, [0], 0), (0, [0], 0)])
def test_single_point_parts_emit_nothing(n, parts, expected):
    assert len(list(dataset_segments(dataset(record(n, parts))))) == expected


def test_vertices_are_projected_with_unit_w():
    lv = build_line_vertices([(P(10, 20), P(30, -40), 0.25)])
    assert lv.vertices.shape == (2, 4)
    assert lv.vertices.dtype == np.float32
    np.testing.assert_allclose(lv.vertices[:, 3], 1.0)
    np.testing.assert_allclose(lv.vertices[0, :3], project(P(10, 20), 0.25), rtol=1e-6)
    np.testing.assert_allclose(lv.vertices[1, :3], project(P(30, -40), 0.25), rtol=1e-6)
    assert lv.nbytes == 2 * VERTEX_SIZE


def test_buffer_is_immutable():
    lv = build_line_vertices(debug_axis_segments())
    with pytest.raises(ValueError):
        lv.vertices[0, 0] = 5.0


def test_empty_source_gives_empty_buffer():
    lv = build_line_vertices(iter(()))
    assert lv.vertex_count == 0 and lv.nbytes == 0


def test_debug_axis_runs_pole_to_pole_above_surface():
    (frm, to, h), = list(debug_axis_segments())
    assert (frm.latitude, to.latitude) == (90.0, -90.0)
    assert h == 1.0
    lv = build_line_vertices(debug_axis_segments())
    assert lv.vertices[0, 1] > 1.9 and lv.vertices[1, 1] < -1.9


def test_graticule_default_counts():
    segs = list(graticule_segments())
    # 11 parallels (-75..75) of 360 chords, 24 meridians of 180 chords
    assert len(segs) == 11 * 360 + 24 * 180
    lats = {a.latitude for a, b, _ in segs if a.latitude == b.latitude}
    assert min(lats) == -75.0 and max(lats) == 75.0


def test_graticule_chords_are_short_and_stay_in_range():
    for a, b, h in graticule_segments(30.0, 5.0):
        assert h == 0.0
        assert abs(a.longitude - b.longitude) + abs(a.latitude - b.latitude) == pytest.approx(5.0)
        assert -180.0 <= b.longitude <= 180.0 and -90.0 <= b.latitude <= 90.0


def test_build_line_sets_in_draw_order_and_upload(device):
    sets = build_line_sets(dataset(record(3, [0])), dataset(record(4, [0, 2])))
    assert tuple(sets) == LINE_SET_ORDER
    assert sets["coastlines"].segment_count == 2
    assert sets["countries"].segment_count == 2
    gpu = upload_line_set(device, sets["countries"])
    assert gpu.size == sets["countries"].nbytes
    assert device.buffers[gpu.handle] == sets["countries"].vertices.tobytes()


def test_part_offsets_past_the_end_are_clamped():
    segs = list(dataset_segments(dataset(record(5, [0, 10]))))
    assert [(a.longitude, b.longitude) for a, b, _ in segs] == [(0, 1), (1, 2), (2, 3), (3, 4)]


@pytest.mark.parametrize("parts,expected", [([-3, 2], 3), ([4, 2], 2), ([7, 9], 0), ([], 0)])
def test_out_of_range_parts_are_skipped(parts, expected):
    assert len(list(dataset_segments(dataset(record(5, parts))))) == expected


def test_gpu_buffer_segment_count():
    lv = build_line_vertices(graticule_segments(30.0, 10.0))
    assert GpuLineBuffer(1, lv.nbytes).segment_count == lv.segment_count
