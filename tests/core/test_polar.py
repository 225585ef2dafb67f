from __future__ import annotations

import numpy as np
import pytest

from engine.core.geometry import Axis, Plane
from engine.core.polar import (
    Vector,
    coordinates_to_vector,
    from_polar,
    rotate_pair,
    to_polar,
    vector_to_coordinates,
    wrap_degrees,
)


@pytest.mark.parametrize(
    "c1,c2,angle,length",
    [
        (5.0, 0.0, 0.0, 5.0),
        (0.0, 5.0, 90.0, 5.0),
        (-5.0, 0.0, 180.0, 5.0),
        (0.0, -5.0, 270.0, 5.0),
        (0.0, 0.0, 0.0, 0.0),
        (1.0, 1.0, 45.0, np.sqrt(2)),
        (-1.0, 1.0, 135.0, np.sqrt(2)),
        (-1.0, -1.0, 225.0, np.sqrt(2)),
        (1.0, -1.0, 315.0, np.sqrt(2)),
    ],
)
def test_to_polar_base_cases_and_quadrants(c1, c2, angle, length) -> None:
    a, r = to_polar(c1, c2)
    assert float(a) == pytest.approx(angle)
    assert float(r) == pytest.approx(length)


def test_to_polar_nan_falls_to_default_branch() -> None:
    a, r = to_polar(float("nan"), 1.0)
    assert float(a) == 0.0 and float(r) == 0.0


@pytest.mark.parametrize(
    "c1,c2",
    [(3.0, 4.0), (-3.0, 4.0), (-3.0, -4.0), (3.0, -4.0), (7.0, 0.0), (0.0, 7.0), (-7.0, 0.0), (0.0, -7.0)],
)
@pytest.mark.parametrize("axis", list(Axis))
def test_round_trip_through_vector(c1, c2, axis) -> None:
    p1, p2 = axis.planes
    vec = coordinates_to_vector({p1: c1, p2: c2}, axis)
    back = vector_to_coordinates(vec, axis)
    assert set(back) == {p1, p2}
    assert back[p1] == pytest.approx(c1, abs=1e-9)
    assert back[p2] == pytest.approx(c2, abs=1e-9)


def test_missing_planes_read_as_zero() -> None:
    vec = coordinates_to_vector({Plane.X: 2.0}, Axis.XA)
    assert vec == Vector(angle=0.0, length=2.0)


def test_from_polar_exact_axis_angles() -> None:
    c1, c2 = from_polar(np.array([0.0, 90.0, 180.0, 270.0]), 2.0)
    assert c1.tolist() == [2.0, 0.0, -2.0, 0.0]
    assert c2.tolist() == [0.0, 2.0, 0.0, -2.0]


def test_wrap_degrees() -> None:
    assert wrap_degrees(360.0) == 0.0
    assert wrap_degrees(-90.0) == 270.0
    assert wrap_degrees(725.0) == pytest.approx(5.0)
    # 負の微小値は 360 に丸まらず [0, 360) に収まる
    assert 0.0 <= wrap_degrees(-1e-20) < 360.0
    arr = wrap_degrees(np.array([-360.0, 10.0]))
    assert arr.tolist() == [0.0, 10.0]


def test_rotate_pair_vectorised() -> None:
    x, y = rotate_pair(np.array([50.0, 10.0]), np.array([50.0, 0.0]), 90.0)
    np.testing.assert_allclose(x, [-50.0, 0.0], atol=1e-9)
    np.testing.assert_allclose(y, [50.0, 10.0], atol=1e-9)
