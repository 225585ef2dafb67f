from __future__ import annotations

import numpy as np
import pytest

from engine.core.geometry import Axis, Plane, build_hypercube
from engine.render.projector import (
    Camera,
    DrawStyle,
    apply_field_of_view,
    canvas_origin,
    draw_scene,
    project_shape,
    rotate_coordinates,
)
from engine.render.surface import CompositeMode
from tests._utils.dummies import RecordingSurface


def test_square_rotated_quarter_turn_in_xy(square) -> None:
    posed = square.with_pose(rotation={Axis.XY: 90.0})
    projected = project_shape(posed, 1.0025, np.zeros(4))
    np.testing.assert_allclose(
        projected[:, :2],
        [[-50, 50], [-50, -50], [50, 50], [50, -50]],
        atol=1e-9,
    )


def test_rotation_order_is_canonical() -> None:
    p = np.array([[1.0, 0.0, 0.0, 0.0]])
    # XY 90 → (0,1,0,0)、続いて YZ 90 → (0,0,1,0)
    out = rotate_coordinates(p, {Axis.YZ: 90.0, Axis.XY: 90.0})
    np.testing.assert_allclose(out, [[0.0, 0.0, 1.0, 0.0]], atol=1e-9)
    # 逆順なら YZ は x を動かさず、XY で (0,1,0,0)
    out2 = rotate_coordinates(rotate_coordinates(p, {Axis.YZ: 90.0}), {Axis.XY: 90.0})
    np.testing.assert_allclose(out2, [[0.0, 1.0, 0.0, 0.0]], atol=1e-9)


def test_field_of_view_contracts_by_z_then_a() -> None:
    f = 1.0025
    out = apply_field_of_view(np.array([[10.0, 10.0, 100.0, 0.0], [10.0, 0.0, 0.0, 50.0]]), f)
    np.testing.assert_allclose(out[0], [10 * f**100, 10 * f**100, 100.0, 0.0])
    np.testing.assert_allclose(out[1], [10 * f**50, 0.0, 0.0, 50.0])


def test_field_of_view_uses_contracted_a() -> None:
    f = 1.01
    out = apply_field_of_view(np.array([[1.0, 0.0, 10.0, 10.0]]), f)
    a1 = 10.0 * f**10
    np.testing.assert_allclose(out[0], [f**10 * f**a1, 0.0, 10.0 * f**a1, a1])


@pytest.mark.parametrize("fov", [0.0, -1.0, float("nan")])
def test_invalid_field_of_view(fov) -> None:
    with pytest.raises(ValueError):
        apply_field_of_view(np.zeros((1, 4)), fov)


def test_position_translates_before_projection(square) -> None:
    moved = square.with_pose(position={Plane.X: 5.0})
    projected = project_shape(moved, 1.0, canvas_origin(200, 100))
    assert projected[0, 0] == pytest.approx(155.0)
    assert projected[0, 1] == pytest.approx(100.0)


def test_draw_scene_fills_trail_then_strokes_edges(tesseract) -> None:
    surface = RecordingSurface(400, 300)
    style = DrawStyle()
    assert draw_scene(surface, [tesseract], Camera(fov=1.0025), style=style, opacity=0.5)

    fill, stroke = surface.ops
    assert fill.rect == (0, 0, 400, 300)
    assert fill.style == (0.0, 0.0, 0.0, 0.1)
    assert fill.global_alpha == 1.0
    assert fill.composite_mode is CompositeMode.REPLACE

    assert stroke.style == (1.0, 1.0, 1.0, 0.125)
    assert stroke.line_width == 2.0
    assert stroke.global_alpha == 0.5
    assert stroke.composite_mode is CompositeMode.LIGHTEN
    assert len(stroke.segments) == tesseract.edge_count == 32


def test_unposed_square_is_centered(square) -> None:
    surface = RecordingSurface(400, 300)
    draw_scene(surface, [square], Camera(fov=1.0025))
    (stroke,) = surface.strokes
    (x0, y0), (x1, y1) = stroke.segments[0]
    assert (x0, y0) == pytest.approx((250.0, 200.0))
    assert (x1, y1) == pytest.approx((150.0, 200.0))


def test_draw_scene_skips_missing_or_unready_surface(tesseract) -> None:
    assert draw_scene(None, [tesseract], Camera()) is False
    surface = RecordingSurface(ready=False)
    assert draw_scene(surface, [tesseract], Camera()) is False
    assert surface.ops == []


def test_camera_position_is_frozen() -> None:
    cam = Camera(position={Plane.Z: 200.0})
    assert cam.position[Plane.Z] == 200.0
    assert cam.position[Plane.X] == 0.0
    with pytest.raises(TypeError):
        cam.position[Plane.Z] = 1.0  # type: ignore[index]


def test_higher_dimension_rotation_keeps_edge_lengths() -> None:
    shape = build_hypercube(4, 10).with_pose(
        rotation={Axis.XA: 33.0, Axis.ZA: 71.0, Axis.XY: 12.0}
    )
    pts = rotate_coordinates(shape.vertices, shape.rotation)
    lengths = [np.linalg.norm(pts[i] - pts[j]) for i, j in shape.edge_list()]
    np.testing.assert_allclose(lengths, 10.0, rtol=1e-9)
