"""
どこで: `util.color`。
何を: 色指定の正規化（Hex, `rgba(...)` 表記, RGBA 0–1, RGBA 0–255）と合成用の小ヘルパ。
なぜ: 設定ファイル/描画面/ランナーで同一の受理仕様とエラーメッセージを提供するため。
"""

from __future__ import annotations

import re
from typing import Sequence

from common.types import RGBA

_CSS_RGBA = re.compile(r"^rgba?\(\s*([^)]*)\)$", re.IGNORECASE)


def _clamp01(x: float) -> float:
    return 0.0 if x < 0.0 else 1.0 if x > 1.0 else float(x)


def parse_hex_color_str(s: str) -> RGBA:
    """Hex 文字列から RGBA(0–1) を返す。

    受理形式: "#RRGGBB", "#RRGGBBAA", "0xRRGGBB", "0xRRGGBBAA", "RRGGBB", "RRGGBBAA"。
    大文字/小文字は不問。
    """
    t = s.strip()
    if t.startswith("#"):
        t = t[1:]
    elif t.lower().startswith("0x"):
        t = t[2:]
    if len(t) not in (6, 8):
        raise ValueError(f"invalid hex color length: '{s}' (expected RRGGBB or RRGGBBAA)")
    try:
        r = int(t[0:2], 16)
        g = int(t[2:4], 16)
        b = int(t[4:6], 16)
        a = int(t[6:8], 16) if len(t) == 8 else 255
    except ValueError as e:
        raise ValueError(f"invalid hex color: '{s}'") from e
    return (r / 255.0, g / 255.0, b / 255.0, a / 255.0)


def parse_css_rgba_str(s: str) -> RGBA:
    """`rgba(255, 255, 255, 0.125)` / `rgb(0, 0, 0)` 形式を RGBA(0–1) に変換する。

    RGB 成分は 0–255、アルファは 0–1。
    """
    m = _CSS_RGBA.match(s.strip())
    if m is None:
        raise ValueError(f"invalid css color: '{s}'")
    parts = [p.strip() for p in m.group(1).split(",")]
    if len(parts) not in (3, 4):
        raise ValueError(f"css color must have 3 or 4 components: '{s}'")
    try:
        r, g, b = (float(p) for p in parts[:3])
        a = float(parts[3]) if len(parts) == 4 else 1.0
    except ValueError as e:
        raise ValueError(f"invalid css color component: '{s}'") from e
    return (_clamp01(r / 255.0), _clamp01(g / 255.0), _clamp01(b / 255.0), _clamp01(a))


def normalize_color(value: object) -> RGBA:
    """色を RGBA(0–1) へ正規化する。

    - 受理: Hex 文字列, `rgba(...)` 文字列, (r,g,b[,a]) （0–1 または 0–255）
    - 返値: (r,g,b,a) （0–1）
    """
    if isinstance(value, str):
        if value.strip().lower().startswith("rgb"):
            return parse_css_rgba_str(value)
        return parse_hex_color_str(value)
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"unsupported color type: {type(value)!r}")
    seq: Sequence[object] = value
    if len(seq) not in (3, 4):
        raise ValueError("color tuple/list must be length 3 or 4")
    try:
        fseq = [float(c) for c in seq]  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise ValueError(f"invalid color tuple/list: {value!r}") from e
    if len(fseq) == 3:
        fseq.append(1.0 if all(0.0 <= c <= 1.0 for c in fseq) else 255.0)
    # まず 0–1 とみなせるならそのまま
    if all(0.0 <= c <= 1.0 for c in fseq):
        r, g, b, a = fseq
        return (r, g, b, a)
    # 次に 0–255 とみなし、整数丸め → 0–1 へスケール
    r8, g8, b8, a8 = (max(0, min(255, int(round(c)))) for c in fseq)
    return (r8 / 255.0, g8 / 255.0, b8 / 255.0, a8 / 255.0)


def scale_alpha(rgba: RGBA, factor: float) -> RGBA:
    """アルファのみに係数を掛ける（global alpha の適用）。"""
    r, g, b, a = rgba
    return (r, g, b, _clamp01(a * float(factor)))


def premultiply(rgba: RGBA) -> RGBA:
    """RGB をアルファで乗算した色を返す（加算系ブレンド用）。"""
    r, g, b, a = rgba
    return (r * a, g * a, b * a, a)


__all__ = [
    "parse_hex_color_str",
    "parse_css_rgba_str",
    "normalize_color",
    "scale_alpha",
    "premultiply",
]
