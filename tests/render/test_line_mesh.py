from __future__ import annotations

import numpy as np
import pytest

moderngl = pytest.importorskip("moderngl")

from engine.render.line_mesh import LineMesh, segments_to_triangles
from tests._utils.dummies import FakeGLContext


def test_horizontal_segment_becomes_two_triangles() -> None:
    tris = segments_to_triangles(np.array([[0.0, 0.0]]), np.array([[10.0, 0.0]]), 2.0)
    assert tris.shape == (6, 2)
    assert tris.dtype == np.float32
    assert set(map(tuple, tris.tolist())) == {(0.0, 1.0), (0.0, -1.0), (10.0, 1.0), (10.0, -1.0)}


def test_degenerate_and_non_finite_segments_are_dropped() -> None:
    starts = np.array([[0.0, 0.0], [1.0, 1.0], [np.nan, 0.0]])
    ends = np.array([[0.0, 0.0], [1.0, 4.0], [1.0, 1.0]])
    tris = segments_to_triangles(starts, ends, 1.0)
    assert tris.shape == (6, 2)
    assert segments_to_triangles(starts[:1], ends[:1], 1.0).shape == (0, 2)


def test_shape_mismatch_raises() -> None:
    with pytest.raises(ValueError):
        segments_to_triangles(np.zeros((2, 2)), np.zeros((3, 2)), 1.0)


def test_line_mesh_upload_render_and_grow() -> None:
    ctx = FakeGLContext()
    program = ctx.program(vertex_shader="", fragment_shader="")
    mesh = LineMesh(ctx, program, initial_reserve=48)

    mesh.render()
    assert ctx.renders == []

    small = np.zeros((6, 2), dtype=np.float32)
    mesh.upload(small)
    assert mesh.vbo.size == 48
    mesh.render()
    assert ctx.renders[-1].vertices == 6
    assert ctx.renders[-1].mode == moderngl.TRIANGLES

    first_vbo = mesh.vbo
    big = np.zeros((60, 2), dtype=np.float32)
    mesh.upload(big)
    assert first_vbo.released
    assert mesh.vbo.size == max(big.nbytes, 96)
    assert mesh.vertex_count == 60

    mesh.release()
    assert mesh.vbo.released
