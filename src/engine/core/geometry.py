"""
超立方体ジオメトリ（プロジェクト中核モジュール）

本モジュールは、4 次元空間の平面 `Plane`、回転軸 `Axis`、および頂点/辺グラフ `Shape` と、
その生成関数 `build_hypercube()` を提供する。

データモデル（不変条件）:
- `Plane` は `x, y, z, a` の 4 値のみ（`a` は第 4 の空間次元）。列番号 `column` を持つ。
- `Axis` は 2 平面の組で、`XY, XZ, YZ, XA, YA, ZA` の 6 値のみ。宣言順が正準順序。
- `Shape.vertices: float64 ndarray (2^d, 4)`: 行が頂点 id、列が平面（x, y, z, a）。
- `Shape.edges: int ndarray (E, 2)`: 行が辺 id、各行は `i < j` の頂点 id 対。
- 頂点/辺は生成後に書き込み不可（`setflags(write=False)`）。
- `rotation`/`position` は読み取り専用マッピング。毎フレーム `with_pose()` で新しい
  スナップショットを作って差し替える（その場では変更しない）。

辺の条件:
- 2 頂点の座標が 1 平面を除いて全て一致し、その平面では符号だけが反対（±n）であるとき接続する。
- 対称な判定のため、`i < j` の組だけを採用して同一の無向辺を二重に生成しない。

直感図（dimensions=2, side_length=100）:

    # vertices (N=4)        edges (E=4)
    #   id  x    y            (0, 1)  x だけ反対
    #   0  [ 50,  50]          (0, 2)  y だけ反対
    #   1  [-50,  50]          (1, 3)
    #   2  [ 50, -50]          (2, 3)
    #   3  [-50, -50]

使用例:
    shape = build_hypercube(4, 200)
    assert shape.vertex_count == 16 and shape.edge_count == 32
    posed = shape.with_pose(rotation={Axis.XY: 45.0})
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence

import numpy as np

MAX_DIMENSIONS = 4


class InvalidDimensionError(ValueError):
    """次元数が 1〜4 の範囲外（または整数でない）場合に送出される例外。"""


class Plane(Enum):
    """4 次元空間の座標平面（軸）。"""

    X = "x"
    Y = "y"
    Z = "z"
    A = "a"

    @property
    def column(self) -> int:
        """頂点配列における列番号。"""
        return _PLANE_INDEX[self]


PLANES: tuple[Plane, ...] = tuple(Plane)
_PLANE_INDEX: dict[Plane, int] = {p: i for i, p in enumerate(PLANES)}


class Axis(Enum):
    """回転軸（2 平面が張る回転面）。宣言順が回転適用の正準順序。"""

    XY = (Plane.X, Plane.Y)
    XZ = (Plane.X, Plane.Z)
    YZ = (Plane.Y, Plane.Z)
    XA = (Plane.X, Plane.A)
    YA = (Plane.Y, Plane.A)
    ZA = (Plane.Z, Plane.A)

    @property
    def planes(self) -> tuple[Plane, Plane]:
        return self.value

    @property
    def indices(self) -> tuple[int, int]:
        p1, p2 = self.value
        return p1.column, p2.column

    @property
    def label(self) -> str:
        p1, p2 = self.value
        return f"{p1.value}{p2.value}"

    @classmethod
    def from_label(cls, label: str) -> "Axis":
        """`"xy"` のようなラベルから Axis を返す（大文字/小文字は不問）。"""
        key = label.strip().lower()
        for axis in cls:
            if axis.label == key:
                return axis
        raise ValueError(f"unknown axis label: {label!r}")


AXES: tuple[Axis, ...] = tuple(Axis)

Coordinates = Mapping[Plane, float]
Rotation = Mapping[Axis, float]
Edge = tuple[int, int]

INIT_ROTATION: Rotation = MappingProxyType({axis: 0.0 for axis in AXES})
INIT_POSITION: Coordinates = MappingProxyType({plane: 0.0 for plane in PLANES})


def _as_plane(key: Plane | str) -> Plane:
    return key if isinstance(key, Plane) else Plane(str(key).lower())


def coordinates_to_array(coordinates: Mapping[Plane, float] | Mapping[str, float]) -> np.ndarray:
    """座標マッピングを `(4,)` 配列に変換する。欠けた平面は 0。"""
    out = np.zeros(len(PLANES), dtype=np.float64)
    for key, value in coordinates.items():
        out[_as_plane(key).column] = float(value)
    return out


def array_to_coordinates(values: Sequence[float] | np.ndarray) -> dict[Plane, float]:
    """`(4,)` 配列を座標マッピングに変換する。"""
    arr = np.asarray(values, dtype=np.float64).reshape(-1)
    if arr.shape[0] != len(PLANES):
        raise ValueError(f"coordinates must have {len(PLANES)} components, got {arr.shape[0]}")
    return {plane: float(arr[plane.column]) for plane in PLANES}


def _freeze_rotation(rotation: Mapping[Axis, float] | None) -> Rotation:
    values = {axis: 0.0 for axis in AXES}
    for axis, amount in (rotation or {}).items():
        values[axis if isinstance(axis, Axis) else Axis.from_label(str(axis))] = float(amount)
    return MappingProxyType(values)


def _freeze_position(position: Mapping[Plane, float] | Mapping[str, float] | None) -> Coordinates:
    arr = coordinates_to_array(position or {})
    return MappingProxyType(array_to_coordinates(arr))


@dataclass(frozen=True, eq=False)
class Shape:
    """超立方体の頂点/辺グラフと、現在の回転・位置のスナップショット。

    フィールド:
    - `vertices (N,4) float64`: 読み取り専用の頂点座標。行番号が頂点 id。
    - `edges (E,2) int64`: 読み取り専用の辺。行番号が辺 id。
    - `rotation`: 軸ごとの回転角 [deg]（全 6 軸を必ず含む）。
    - `position`: 形状全体の平行移動量（全 4 平面を必ず含む）。
    """

    vertices: np.ndarray
    edges: np.ndarray
    dimensions: int
    side_length: float
    rotation: Rotation = field(default_factory=lambda: INIT_ROTATION)
    position: Coordinates = field(default_factory=lambda: INIT_POSITION)

    @property
    def vertex_count(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def edge_count(self) -> int:
        return int(self.edges.shape[0])

    def vertex(self, vertex_id: int) -> dict[Plane, float]:
        return array_to_coordinates(self.vertices[int(vertex_id)])

    def vertex_map(self) -> dict[int, dict[Plane, float]]:
        return {i: array_to_coordinates(row) for i, row in enumerate(self.vertices)}

    def edge_list(self) -> list[Edge]:
        return [(int(i), int(j)) for i, j in self.edges]

    def position_array(self) -> np.ndarray:
        return coordinates_to_array(self.position)

    def with_pose(
        self,
        *,
        rotation: Mapping[Axis, float] | None = None,
        position: Mapping[Plane, float] | None = None,
    ) -> "Shape":
        """回転/位置だけを差し替えた新しいスナップショットを返す（トポロジは共有）。"""
        return replace(
            self,
            rotation=self.rotation if rotation is None else _freeze_rotation(rotation),
            position=self.position if position is None else _freeze_position(position),
        )


def _validate_dimensions(dimensions: object) -> int:
    if isinstance(dimensions, bool) or not isinstance(dimensions, (int, np.integer)):
        raise InvalidDimensionError(f"dimensions must be an integer, got {dimensions!r}")
    d = int(dimensions)
    if d > MAX_DIMENSIONS:
        raise InvalidDimensionError(f"Cannot have more than {MAX_DIMENSIONS} dimensions (got {d})")
    if d < 1:
        raise InvalidDimensionError(f"Cannot have less than 1 dimension (got {d})")
    return d


def _extend_across_plane(
    plane: Plane, coordinate_sets: list[np.ndarray] | None, half: float
) -> list[np.ndarray]:
    """既存の座標集合と `{+half, -half}`（plane 上）の直積をとる。+ 側のブロックが先。"""
    extended: list[np.ndarray] = []
    for sign in (1.0, -1.0):
        if coordinate_sets is None:
            row = np.zeros(len(PLANES), dtype=np.float64)
            row[plane.column] = half * sign
            extended.append(row)
            continue
        for coords in coordinate_sets:
            row = coords.copy()
            row[plane.column] = half * sign
            extended.append(row)
    return extended


def connect_edges(vertices: np.ndarray) -> np.ndarray:
    """1 平面だけ符号反対で他は一致する頂点対（i < j）を辺として返す。"""
    v = np.asarray(vertices, dtype=np.float64)
    n = v.shape[0]
    if n < 2:
        return np.empty((0, 2), dtype=np.int64)
    a = v[:, None, :]
    b = v[None, :, :]
    differs = a != b
    opposite = a == -b
    exactly_one = differs.sum(axis=-1) == 1
    sign_flip = np.all(~differs | opposite, axis=-1)
    upper = np.triu(np.ones((n, n), dtype=bool), k=1)
    edges = np.argwhere(exactly_one & sign_flip & upper).astype(np.int64)
    return edges.reshape(-1, 2)


def build_hypercube(dimensions: int = 4, side_length: float = 100.0) -> Shape:
    """`dimensions` 次元の超立方体（正方形/立方体/テッセラクト）を生成する。

    Parameters
    ----------
    dimensions : int, default 4
        1〜4。範囲外は `InvalidDimensionError`（呼び出し側の誤り。再試行しない）。
    side_length : float, default 100.0
        1 辺の長さ。各頂点は有効平面上で `±side_length/2` をとる。

    Returns
    -------
    Shape
        `2**dimensions` 頂点、`dimensions * 2**(dimensions-1)` 辺を持つ形状。
    """
    d = _validate_dimensions(dimensions)
    s = float(side_length)
    if not math.isfinite(s) or s <= 0.0:
        raise ValueError(f"side_length must be a positive finite number, got {side_length!r}")

    half = s / 2.0
    coordinate_sets: list[np.ndarray] | None = None
    for plane in PLANES[:d]:
        coordinate_sets = _extend_across_plane(plane, coordinate_sets, half)

    vertices = np.stack(coordinate_sets or [], axis=0)
    edges = connect_edges(vertices)
    vertices.setflags(write=False)
    edges.setflags(write=False)
    return Shape(vertices=vertices, edges=edges, dimensions=d, side_length=s)


# ── 距離ユーティリティ ───────────────────
def _vertex_array(vertices: np.ndarray | Iterable[Mapping[Plane, float]]) -> np.ndarray:
    if isinstance(vertices, np.ndarray):
        arr = np.asarray(vertices, dtype=np.float64)
        return arr.reshape(-1, len(PLANES))
    rows = [coordinates_to_array(v) for v in vertices]
    if not rows:
        return np.empty((0, len(PLANES)), dtype=np.float64)
    return np.stack(rows, axis=0)


def distance_between(
    vertex1: Mapping[Plane, float],
    vertex2: Mapping[Plane, float],
    planes: Sequence[Plane] = PLANES,
) -> float:
    """2 頂点間のユークリッド距離（`planes` に含まれる平面だけで測る）。"""
    a = coordinates_to_array(vertex1)
    b = coordinates_to_array(vertex2)
    cols = [p.column for p in planes]
    return float(np.sqrt(np.sum((a[cols] - b[cols]) ** 2)))


def furthest_distance(
    vertices: np.ndarray | Iterable[Mapping[Plane, float]],
    planes: Sequence[Plane],
) -> float:
    """`planes` 上で最も離れた 2 頂点の距離。

    `planes` 上で一致する頂点は 1 つにまとめてから比較する。平面が 2 未満なら `ValueError`。
    """
    if len(planes) < 2:
        raise ValueError("Need at least 2 planes")
    arr = _vertex_array(vertices)
    cols = [p.column for p in planes]
    projected = np.unique(arr[:, cols], axis=0)
    if projected.shape[0] < 2:
        return 0.0
    diff = projected[:, None, :] - projected[None, :, :]
    return float(np.sqrt((diff**2).sum(axis=-1)).max())


__all__ = [
    "AXES",
    "Axis",
    "Coordinates",
    "Edge",
    "INIT_POSITION",
    "INIT_ROTATION",
    "InvalidDimensionError",
    "MAX_DIMENSIONS",
    "PLANES",
    "Plane",
    "Rotation",
    "Shape",
    "array_to_coordinates",
    "build_hypercube",
    "connect_edges",
    "coordinates_to_array",
    "distance_between",
    "furthest_distance",
]
