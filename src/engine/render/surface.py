"""
どこで: `engine.render.surface`。
何を: Projector が描画に使う 2D 描画面の契約 `DrawingSurface` と合成モード `CompositeMode`。
なぜ: Projector を GPU 実装（`GLSurface`）やテスト用の記録面から独立させるため。

契約:
- `width`/`height` はデバイスピクセル（HiDPI ではウィンドウサイズより大きい）。
- `is_ready` が False の間は描画しない（初期化/破棄中の競合はフレーム単位でスキップ）。
- パス構築は `begin_path` → (`move_to` → `line_to`)* → `stroke`。
- `on_resize(cb)` は `cb(width, height)` を購読し、解除ハンドルを返す。
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Protocol

from common.types import RGBA
from engine.core.subscription import Subscription


class CompositeMode(Enum):
    """合成モード。値は 2D キャンバスでの名前。"""

    REPLACE = "source-over"  # 通常のアルファ合成（軌跡用の半透明塗り）
    LIGHTEN = "screen"  # 加算寄りの合成（重なった線が明るくなる）


class DrawingSurface(Protocol):
    width: int
    height: int
    fill_style: RGBA
    stroke_style: RGBA
    line_width: float
    global_alpha: float
    composite_mode: CompositeMode

    @property
    def is_ready(self) -> bool: ...

    def fill_rect(self, x: float, y: float, width: float, height: float) -> None: ...

    def begin_path(self) -> None: ...

    def move_to(self, x: float, y: float) -> None: ...

    def line_to(self, x: float, y: float) -> None: ...

    def stroke(self) -> None: ...

    def on_resize(self, callback: Callable[[int, int], None]) -> Subscription: ...


__all__ = ["CompositeMode", "DrawingSurface"]
