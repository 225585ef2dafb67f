"""
どこで: `engine.render.gl_surface`。
何を: ModernGL による `DrawingSurface` 実装。描画は常駐のオフスクリーン FBO に蓄積し、
      `present()` で画面へ全面転写する。
なぜ: 低アルファの全面塗りで前フレームを少しずつ消す「軌跡」は、前フレームの画素が残る描画先を
      必要とするため（ウィンドウのバックバッファは毎フレーム破棄される）。

合成モード:
- `REPLACE`（source-over）: `blend_func = (SRC_ALPHA, ONE_MINUS_SRC_ALPHA)`
- `LIGHTEN`（screen）: 色を事前乗算し `blend_func = (ONE, ONE_MINUS_SRC_COLOR)`
  → `src + dst * (1 - src)` となり、重なった線ほど明るくなる。

座標系はデバイスピクセル（左上原点・y 下向き）。頂点シェーダでクリップ空間へ変換する。
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import moderngl
import numpy as np

from common.types import RGBA
from engine.core.subscription import Subscription
from util.color import premultiply, scale_alpha

from .line_mesh import LineMesh, segments_to_triangles
from .surface import CompositeMode

logger = logging.getLogger(__name__)

ResizeCallback = Callable[[int, int], None]

_SOLID_VERTEX_SHADER = """
#version 330
in vec2 in_vert;
uniform vec2 resolution;
void main() {
    vec2 clip = vec2(in_vert.x / resolution.x * 2.0 - 1.0, 1.0 - in_vert.y / resolution.y * 2.0);
    gl_Position = vec4(clip, 0.0, 1.0);
}
"""

_SOLID_FRAGMENT_SHADER = """
#version 330
uniform vec4 color;
out vec4 f_color;
void main() {
    f_color = color;
}
"""

_PRESENT_VERTEX_SHADER = """
#version 330
in vec2 in_vert;
out vec2 v_uv;
void main() {
    v_uv = in_vert * 0.5 + 0.5;
    gl_Position = vec4(in_vert, 0.0, 1.0);
}
"""

_PRESENT_FRAGMENT_SHADER = """
#version 330
uniform sampler2D frame;
in vec2 v_uv;
out vec4 f_color;
void main() {
    f_color = texture(frame, v_uv);
}
"""

_FULLSCREEN_STRIP = np.array([-1.0, -1.0, 1.0, -1.0, -1.0, 1.0, 1.0, 1.0], dtype=np.float32)


def _rect_triangles(x: float, y: float, w: float, h: float) -> np.ndarray:
    x1, y1 = x + w, y + h
    return np.array(
        [[x, y], [x1, y], [x, y1], [x, y1], [x1, y], [x1, y1]],
        dtype=np.float32,
    )


class GLSurface:
    """ModernGL コンテキスト上の 2D 描画面。"""

    def __init__(
        self,
        ctx: Any,
        width: int,
        height: int,
        *,
        background: RGBA = (0.0, 0.0, 0.0, 1.0),
    ) -> None:
        self.ctx = ctx
        self._background = background

        # 描画状態（2D キャンバスと同じ初期値）
        self.fill_style: RGBA = (0.0, 0.0, 0.0, 1.0)
        self.stroke_style: RGBA = (0.0, 0.0, 0.0, 1.0)
        self.line_width: float = 1.0
        self.global_alpha: float = 1.0
        self.composite_mode: CompositeMode = CompositeMode.REPLACE

        self._solid = ctx.program(
            vertex_shader=_SOLID_VERTEX_SHADER, fragment_shader=_SOLID_FRAGMENT_SHADER
        )
        self._present = ctx.program(
            vertex_shader=_PRESENT_VERTEX_SHADER, fragment_shader=_PRESENT_FRAGMENT_SHADER
        )
        self._mesh = LineMesh(ctx, self._solid)
        self._quad_vbo = ctx.buffer(_FULLSCREEN_STRIP.tobytes())
        self._quad_vao = ctx.simple_vertex_array(self._present, self._quad_vbo, "in_vert")

        self._starts: list[tuple[float, float]] = []
        self._ends: list[tuple[float, float]] = []
        self._cursor: tuple[float, float] | None = None

        self._resize_callbacks: list[ResizeCallback] = []
        self._texture: Any = None
        self._fbo: Any = None
        self._width = 0
        self._height = 0
        self._released = False
        self._allocate(int(width), int(height))

    # ---- サイズ/ライフサイクル ----
    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def is_ready(self) -> bool:
        return not self._released and self._fbo is not None and self._width > 0 and self._height > 0

    def _allocate(self, width: int, height: int) -> None:
        if self._fbo is not None:
            self._fbo.release()
            self._texture.release()
            self._fbo = None
            self._texture = None
        self._width = max(0, width)
        self._height = max(0, height)
        if self._width == 0 or self._height == 0:
            return
        self._texture = self.ctx.texture((self._width, self._height), 4)
        self._fbo = self.ctx.framebuffer(color_attachments=[self._texture])
        self._fbo.clear(*self._background)

    def resize(self, width: int, height: int) -> None:
        """描画先を作り直す（蓄積した軌跡は破棄）。購読者へ新しいサイズを通知する。"""
        if self._released:
            return
        width, height = int(width), int(height)
        if (width, height) == (self._width, self._height):
            return
        self._allocate(width, height)
        logger.debug("surface resized to %dx%d", width, height)
        for cb in tuple(self._resize_callbacks):
            cb(width, height)

    def on_resize(self, callback: ResizeCallback) -> Subscription:
        self._resize_callbacks.append(callback)

        def _release() -> None:
            try:
                self._resize_callbacks.remove(callback)
            except ValueError:
                pass

        return Subscription(_release)

    def clear(self) -> None:
        if self.is_ready:
            self._fbo.clear(*self._background)

    def release(self) -> None:
        """GPU リソースを解放する（冪等）。"""
        if self._released:
            return
        self._released = True
        self._resize_callbacks.clear()
        if self._fbo is not None:
            self._fbo.release()
            self._texture.release()
            self._fbo = None
            self._texture = None
        self._mesh.release()
        self._quad_vao.release()
        self._quad_vbo.release()

    # ---- 描画 API ----
    def fill_rect(self, x: float, y: float, width: float, height: float) -> None:
        if not self.is_ready:
            return
        self._draw(_rect_triangles(float(x), float(y), float(width), float(height)), self.fill_style)

    def begin_path(self) -> None:
        self._starts.clear()
        self._ends.clear()
        self._cursor = None

    def move_to(self, x: float, y: float) -> None:
        self._cursor = (float(x), float(y))

    def line_to(self, x: float, y: float) -> None:
        point = (float(x), float(y))
        if self._cursor is not None:
            self._starts.append(self._cursor)
            self._ends.append(point)
        self._cursor = point

    def stroke(self) -> None:
        if not self.is_ready or not self._starts:
            return
        triangles = segments_to_triangles(
            np.asarray(self._starts), np.asarray(self._ends), self.line_width
        )
        if triangles.shape[0] == 0:
            return
        self._draw(triangles, self.stroke_style)

    @property
    def segment_count(self) -> int:
        """現在のパスに含まれる線分数。"""
        return len(self._starts)

    def _effective_color(self, rgba: RGBA) -> RGBA:
        color = scale_alpha(rgba, self.global_alpha)
        if self.composite_mode is CompositeMode.LIGHTEN:
            return premultiply(color)
        return color

    def _apply_blend(self) -> None:
        self.ctx.enable(moderngl.BLEND)
        if self.composite_mode is CompositeMode.LIGHTEN:
            self.ctx.blend_func = (moderngl.ONE, moderngl.ONE_MINUS_SRC_COLOR)
        else:
            self.ctx.blend_func = (moderngl.SRC_ALPHA, moderngl.ONE_MINUS_SRC_ALPHA)

    def _draw(self, triangles: np.ndarray, rgba: RGBA) -> None:
        self._fbo.use()
        self._solid["resolution"].value = (float(self._width), float(self._height))
        self._solid["color"].value = self._effective_color(rgba)
        self._apply_blend()
        self._mesh.upload(triangles)
        self._mesh.render()

    def present(self) -> None:
        """蓄積した描画を画面（既定フレームバッファ）へ転写する。"""
        if not self.is_ready:
            return
        # 既定フレームバッファの viewport は生成時のサイズのまま残る
        self.ctx.screen.viewport = (0, 0, self._width, self._height)
        self.ctx.screen.use()
        self.ctx.disable(moderngl.BLEND)
        self._texture.use(location=0)
        self._present["frame"].value = 0
        self._quad_vao.render(moderngl.TRIANGLE_STRIP)


__all__ = ["GLSurface"]
