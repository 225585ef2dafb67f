"""
どこで: `engine.render.projector`（Projector）。
何を: 4 次元の頂点を「回転 → 平行移動 → 2 段の奥行き収縮 → 描画面中心へ配置」の順で 2D に写し、
      辺を線分として描画面に描く。
なぜ: 4 次元目を z と a の 2 つの奥行き手掛かりで潰すことで、安定した擬似 3D 透視を得るため。

処理（全頂点を一括でベクトル化）:
1) 回転: 正準順 `XY, XZ, YZ, XA, YA, ZA` で各平面対を極座標化 → 角度加算 → [0,360) → 直交座標。
   4 次元以上では平面回転が可換でないため、この順序は契約の一部。
2) 平行移動: `shape.position` を加算。
3) 収縮: `x, y, a *= fov ** z` の後、更新後の値で `x, y, z *= fov ** a`。
4) 配置: `(width/2, height/2, 0, 0)` を加算。

描画:
- まず描画面全体を軌跡色（既定: 黒 α0.1）で `REPLACE` 合成の塗り（前フレームが徐々に消える）。
- 次に全辺を線色（既定: 白 α0.125）・線幅 2 で `LIGHTEN` 合成、global alpha は現在の不透明度。
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

import numpy as np

from common.types import RGBA
from engine.core.geometry import (
    AXES,
    INIT_POSITION,
    Axis,
    Coordinates,
    Plane,
    Shape,
    array_to_coordinates,
    coordinates_to_array,
)
from engine.core.polar import rotate_pair

from .surface import CompositeMode, DrawingSurface

_X = Plane.X.column
_Y = Plane.Y.column
_Z = Plane.Z.column
_A = Plane.A.column


@dataclass(frozen=True)
class Camera:
    """視点。`fov` は奥行き 1 単位あたりの収縮率（1 に近いほど弱い）。"""

    position: Coordinates = field(default_factory=lambda: INIT_POSITION)
    fov: float = 1.0025

    def __post_init__(self) -> None:
        position = array_to_coordinates(coordinates_to_array(self.position))
        object.__setattr__(self, "position", MappingProxyType(position))


@dataclass(frozen=True)
class DrawStyle:
    trail_color: RGBA = (0.0, 0.0, 0.0, 0.1)
    line_color: RGBA = (1.0, 1.0, 1.0, 0.125)
    line_width: float = 2.0


DEFAULT_STYLE = DrawStyle()


def rotate_coordinates(points: np.ndarray, rotation: Mapping[Axis, float]) -> np.ndarray:
    """全 6 軸の回転を正準順に適用した新しい `(N,4)` 配列を返す。"""
    out = np.array(points, dtype=np.float64, copy=True).reshape(-1, 4)
    for axis in AXES:
        amount = float(rotation.get(axis, 0.0))
        i, j = axis.indices
        out[:, i], out[:, j] = rotate_pair(out[:, i], out[:, j], amount)
    return out


def translate_coordinates(points: np.ndarray, position: Mapping[Plane, float]) -> np.ndarray:
    return np.asarray(points, dtype=np.float64) + coordinates_to_array(position)


def apply_field_of_view(points: np.ndarray, fov: float) -> np.ndarray:
    """2 段の奥行き収縮（z による x,y,a、続いて a による x,y,z）。"""
    f = float(fov)
    if not math.isfinite(f) or f <= 0.0:
        raise ValueError(f"fov must be a positive finite number, got {fov!r}")
    out = np.array(points, dtype=np.float64, copy=True).reshape(-1, 4)
    by_z = np.power(f, out[:, _Z])
    out[:, _X] *= by_z
    out[:, _Y] *= by_z
    out[:, _A] *= by_z
    by_a = np.power(f, out[:, _A])
    out[:, _X] *= by_a
    out[:, _Y] *= by_a
    out[:, _Z] *= by_a
    return out


def canvas_origin(width: float, height: float) -> np.ndarray:
    """描画面の原点オフセット（中心）。"""
    return np.array([width / 2.0, height / 2.0, 0.0, 0.0], dtype=np.float64)


def place_on_surface(points: np.ndarray, origin: np.ndarray) -> np.ndarray:
    return np.asarray(points, dtype=np.float64) + np.asarray(origin, dtype=np.float64)


def project_shape(shape: Shape, fov: float, origin: np.ndarray) -> np.ndarray:
    """形状の全頂点を描画面座標へ写した `(N,4)` 配列（列 x,y が描画位置）。"""
    rotated = rotate_coordinates(shape.vertices, shape.rotation)
    moved = translate_coordinates(rotated, shape.position)
    contracted = apply_field_of_view(moved, fov)
    return place_on_surface(contracted, origin)


def draw_shape(
    surface: DrawingSurface,
    shape: Shape,
    origin: np.ndarray,
    fov: float,
    *,
    style: DrawStyle = DEFAULT_STYLE,
    opacity: float = 1.0,
) -> None:
    projected = project_shape(shape, fov, origin)

    surface.stroke_style = style.line_color
    surface.composite_mode = CompositeMode.LIGHTEN
    surface.line_width = style.line_width
    surface.global_alpha = float(opacity)

    surface.begin_path()
    for start, end in shape.edges:
        surface.move_to(float(projected[start, _X]), float(projected[start, _Y]))
        surface.line_to(float(projected[end, _X]), float(projected[end, _Y]))
    surface.stroke()


def draw_scene(
    surface: DrawingSurface | None,
    shapes: Iterable[Shape],
    camera: Camera,
    *,
    style: DrawStyle = DEFAULT_STYLE,
    opacity: float = 1.0,
) -> bool:
    """軌跡の塗りと全形状の描画を行う。描画面が無い/未準備なら何もせず False。"""
    if surface is None or not surface.is_ready:
        return False

    origin = canvas_origin(surface.width, surface.height)

    surface.composite_mode = CompositeMode.REPLACE
    surface.global_alpha = 1.0
    surface.fill_style = style.trail_color
    surface.fill_rect(0, 0, surface.width, surface.height)

    for shape in shapes:
        draw_shape(surface, shape, origin, camera.fov, style=style, opacity=opacity)
    return True


__all__ = [
    "Camera",
    "DEFAULT_STYLE",
    "DrawStyle",
    "apply_field_of_view",
    "canvas_origin",
    "draw_scene",
    "draw_shape",
    "place_on_surface",
    "project_shape",
    "rotate_coordinates",
    "translate_coordinates",
]
