"""
どこで: `engine.core` の極座標カーネル。
何を: 2 平面の座標対 ⇄（角度[deg], 長さ）の変換を、符号による象限分岐で明示的に行う。
なぜ: 1 回の arctan2 に頼らず、零・軸上・各象限のすべての符号組み合わせで挙動を固定するため。
      （NaN を生む三角関数呼び出しを経由しない）

分岐表（to_polar）:
    c1 > 0, c2 == 0  →   0°          c1 < 0, c2 == 0  → 180°
    c1 == 0, c2 > 0  →  90°          c1 == 0, c2 < 0  → 270°
    I   (+, +)       →  ref          III (-, -)       → ref + 180
    II  (-, +)       →  180 - ref    IV  (+, -)       → 360 - ref
    (0, 0) / NaN     →  (0°, 長さ 0)
ここで ref = deg(atan(|c2| / |c1|))（c1 != 0 の要素でのみ計算）。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

import numpy as np

from .geometry import Axis, Plane, coordinates_to_array

FULL_TURN = 360.0


@dataclass(frozen=True)
class Vector:
    """回転面上の極座標表現。`angle` は [0, 360) の度数。"""

    angle: float
    length: float


def wrap_degrees(angle):
    """角度を [0, 360) に正規化する（配列/スカラ両対応）。

    負の微小値の剰余が 360.0 に丸められるケースは 0 に寄せる。
    """
    a = np.mod(np.asarray(angle, dtype=np.float64), FULL_TURN)
    a = np.where(a >= FULL_TURN, 0.0, a)
    return a if a.ndim else float(a)


def reference_angle(c1: np.ndarray, c2: np.ndarray) -> np.ndarray:
    """基準角 deg(atan(|c2| / |c1|))。`c1 == 0` の要素は 0 を返す。"""
    abs1 = np.abs(c1)
    abs2 = np.abs(c2)
    ratio = np.divide(abs2, abs1, out=np.zeros_like(abs1), where=abs1 != 0)
    return np.degrees(np.arctan(ratio))


def to_polar(c1, c2) -> tuple[np.ndarray, np.ndarray]:
    """座標対 `(c1, c2)` を `(angle[deg], length)` に変換する（要素ごとに象限分岐）。"""
    c1, c2 = np.broadcast_arrays(np.asarray(c1, dtype=np.float64), np.asarray(c2, dtype=np.float64))
    shape = c1.shape
    c1 = c1.reshape(-1)
    c2 = c2.reshape(-1)
    ref = reference_angle(c1, c2)
    radius = np.hypot(c1, c2)

    conditions = [
        (c1 > 0) & (c2 == 0),
        (c1 > 0) & (c2 > 0),  # I
        (c1 == 0) & (c2 > 0),
        (c1 < 0) & (c2 > 0),  # II
        (c1 < 0) & (c2 == 0),
        (c1 < 0) & (c2 < 0),  # III
        (c1 == 0) & (c2 < 0),
        (c1 > 0) & (c2 < 0),  # IV
    ]
    angles = [
        np.zeros_like(c1),
        ref,
        np.full_like(c1, 90.0),
        180.0 - ref,
        np.full_like(c1, 180.0),
        ref + 180.0,
        np.full_like(c1, 270.0),
        360.0 - ref,
    ]
    lengths = [np.abs(c1), radius, np.abs(c2), radius, np.abs(c1), radius, np.abs(c2), radius]
    # 第 IV 象限の極小の基準角で 360 に丸まる場合があるので正規化する
    angle = wrap_degrees(np.select(conditions, angles, default=0.0))
    length = np.select(conditions, lengths, default=0.0)
    return angle.reshape(shape), length.reshape(shape)


def from_polar(angle, length) -> tuple[np.ndarray, np.ndarray]:
    """`(angle[deg], length)` を座標対 `(c1, c2)` に戻す。角度は先に [0, 360) へ正規化する。"""
    a = np.asarray(wrap_degrees(angle), dtype=np.float64)
    r = np.asarray(length, dtype=np.float64)
    a, r = np.broadcast_arrays(a, r)
    shape = a.shape
    a = a.reshape(-1)
    r = r.reshape(-1)

    # 各象限で使う基準角（0〜90°）
    ref = np.select(
        [a < 90.0, a < 180.0, a < 270.0],
        [a, 180.0 - a, a - 180.0],
        default=360.0 - a,
    )
    adj = r * np.cos(np.radians(ref))
    opp = r * np.sin(np.radians(ref))
    zero = np.zeros_like(r)

    conditions = [
        a == 0.0,
        (a > 0.0) & (a < 90.0),  # I
        a == 90.0,
        (a > 90.0) & (a < 180.0),  # II
        a == 180.0,
        (a > 180.0) & (a < 270.0),  # III
        a == 270.0,
        (a > 270.0) & (a < 360.0),  # IV
    ]
    first = np.select(conditions, [r, adj, zero, -adj, -r, -adj, zero, adj], default=0.0)
    second = np.select(conditions, [zero, opp, r, opp, zero, -opp, -r, -opp], default=0.0)
    return first.reshape(shape), second.reshape(shape)


def coordinates_to_vector(coordinates: Mapping[Plane, float], axis: Axis) -> Vector:
    """座標マッピングの `axis` 成分を極座標 `Vector` に変換する。欠けた平面は 0。"""
    values = coordinates_to_array(coordinates)
    i, j = axis.indices
    angle, length = to_polar(values[i], values[j])
    return Vector(angle=float(angle), length=float(length))


def vector_to_coordinates(vector: Vector, axis: Axis) -> dict[Plane, float]:
    """極座標 `Vector` を `axis` の 2 平面だけを持つ座標マッピングに戻す。"""
    c1, c2 = from_polar(vector.angle, vector.length)
    p1, p2 = axis.planes
    return {p1: float(c1), p2: float(c2)}


def rotate_pair(c1, c2, degrees) -> tuple[np.ndarray, np.ndarray]:
    """座標対を `degrees` だけ回転させる（極座標化 → 加算 → 正規化 → 直交座標）。"""
    angle, length = to_polar(c1, c2)
    return from_polar(wrap_degrees(angle + degrees), length)


__all__ = [
    "FULL_TURN",
    "Vector",
    "coordinates_to_vector",
    "from_polar",
    "reference_angle",
    "rotate_pair",
    "to_polar",
    "vector_to_coordinates",
    "wrap_degrees",
]
