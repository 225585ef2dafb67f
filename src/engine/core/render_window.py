"""
どこで: `engine.core` の描画ウィンドウ薄ラッパ。
何を: Pyglet Window（MSAA/vsync/背景クリア）と描画コールバック登録、リサイズ通知の購読を提供。
なぜ: 描画面/アニメーション層から GUI 依存を切り離し、最小インターフェイスで統一するため。

使用例:
    win = RenderWindow(1080, 1080, bg_color=(0, 0, 0, 1))
    sub = win.subscribe_resize(lambda w, h: print(w, h))

    def draw_scene():
        surface.present()

    win.add_draw_callback(draw_scene)
    pyglet.app.run()
    sub.close()
"""

from __future__ import annotations

import logging
from typing import Callable

import pyglet
from pyglet.gl import Config, glClearColor

from common.types import RGBA

from .subscription import Subscription

logger = logging.getLogger(__name__)

ResizeCallback = Callable[[int, int], None]


class RenderWindow(pyglet.window.Window):
    def __init__(
        self,
        width: int,
        height: int,
        *,
        bg_color: RGBA = (0.0, 0.0, 0.0, 1.0),
        caption: str = "Tesseract",
        resizable: bool = True,
    ):
        """ウィンドウを生成する。

        引数:
            width: ウィンドウ幅（ピクセル）。
            height: ウィンドウ高さ（ピクセル）。
            bg_color: 背景色 RGBA（0.0〜1.0）。
        """
        # 線描画を滑らかにするために MSAA を有効化
        config = Config(double_buffer=True, sample_buffers=1, samples=4, vsync=True)
        super().__init__(
            width=width, height=height, caption=caption, config=config, resizable=resizable
        )
        self._bg_color = bg_color
        self._draw_callbacks: list[Callable[[], None]] = []
        self._resize_callbacks: list[ResizeCallback] = []

    def add_draw_callback(self, func: Callable[[], None]) -> None:
        """
        `on_draw` 中に呼び出す描画関数を登録する。

        - 関数は引数を取らず、副作用で描画を行うこと。
        - 登録順に呼び出される。
        """
        self._draw_callbacks.append(func)

    def subscribe_resize(self, func: ResizeCallback) -> Subscription:
        """リサイズ通知（フレームバッファ=デバイスピクセル単位）を購読する。"""
        self._resize_callbacks.append(func)

        def _release() -> None:
            try:
                self._resize_callbacks.remove(func)
            except ValueError:
                pass

        return Subscription(_release)

    @property
    def device_size(self) -> tuple[int, int]:
        """フレームバッファのサイズ（HiDPI ではウィンドウサイズより大きい）。"""
        w, h = self.get_framebuffer_size()
        return int(w), int(h)

    def on_draw(self):  # Pyglet 既定のイベント名
        """ウィンドウ描画イベントハンドラ。登録された描画コールバックを呼び出す。"""
        r, g, b, a = self._bg_color
        glClearColor(r, g, b, a)
        self.clear()
        for cb in self._draw_callbacks:
            cb()

    def on_resize(self, width, height):  # Pyglet 既定のイベント名
        super().on_resize(width, height)
        fb_w, fb_h = self.device_size
        logger.debug("window resized: %dx%d (framebuffer %dx%d)", width, height, fb_w, fb_h)
        for cb in tuple(self._resize_callbacks):
            cb(fb_w, fb_h)

    # ---- helpers ----
    def set_background_color(self, rgba: RGBA) -> None:
        """背景色 RGBA(0–1) を更新する。次フレームから反映。"""
        r, g, b, a = rgba
        self._bg_color = (float(r), float(g), float(b), float(a))


__all__ = ["RenderWindow", "ResizeCallback"]
