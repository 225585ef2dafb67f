"""
どこで: `api.visualiser`（実行ランナー）。
何を: 音楽状態の供給元を受け取り、ウィンドウ生成・GL 描画面・アニメーションドライバ・
      MIDI クロック（任意）・フレームループを結線して実行する。
なぜ: 少ない記述で音楽に位相同期した超立方体を表示できるようにするため（MIDI は任意で自動フォールバック）。

実行フロー（概要）:
1) 設定解決: `util.utils.load_config()` と `TSV_*` 環境変数から
   `VisualiserSettings`/`WindowSettings`/`MidiClockSettings` を確定（引数の明示指定が優先）。
2) ロギング: `common.logging.setup_default_logging()`（ホスト側の設定があれば何もしない）。
3) MIDI クロック: ポート指定があれば `MidiClockTempo` を開き、供給元の状態をハブ経由で中継して
   bpm を上書きする。ポートが無い/開けない場合は警告を出して MIDI 無しで継続。
4) ウィンドウ/GL: `RenderWindow` と `moderngl.create_context()`、`GLSurface` を生成し、
   ウィンドウのリサイズを描画面へ転送。
5) ドライバ: `AnimationDriver` を生成して音楽状態を購読。
6) フレーム駆動: `FrameClock([midi_clock, driver])` を `FrameLoop`（`pyglet.clock.schedule`）で毎表示フレーム実行。
7) 終了: `ESC` でウィンドウを閉じ、購読解除・ループ停止・MIDI/GL 解放を冪等に行う。

例:
    from api.visualiser import run_visualiser
    from engine.io.music_state import MusicState, MusicStateHub

    hub = MusicStateHub()
    hub.publish(MusicState(bpm=128, root_identity=0, loop_ticks={"kick": 7680, "bass": 15360}))
    run_visualiser(hub)
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable

from common.logging import setup_default_logging
from common.types import RGBA
from engine.animation.driver import AnimationDriver, AnimationState
from engine.animation.settings import MidiClockSettings, VisualiserSettings, WindowSettings
from engine.core.tickable import Tickable
from engine.io.music_state import MusicStateHub, MusicStateProvider
from util.color import normalize_color
from util.utils import load_config

logger = logging.getLogger(__name__)

KeyHandler = Callable[[int, int], None]


def setup_midi_clock(port: str | None, hub: MusicStateHub, settings: MidiClockSettings):
    """MIDI クロックを開いて返す。ポート未指定/不在/未導入なら None（フォールバック）。"""
    if not port:
        return None
    try:
        from engine.io.midi_clock import InvalidPortError, MidiClockTempo
    except ImportError as e:
        logger.warning("MIDI unavailable; running without MIDI clock: %s", e)
        return None
    try:
        return MidiClockTempo.open(
            port, hub, window=settings.window, min_change_bpm=settings.min_change_bpm
        )
    except (InvalidPortError, OSError, ImportError) as e:
        # ImportError: mido のバックエンド（python-rtmidi）未導入
        logger.warning("MIDI clock unavailable; running without it: %s", e)
        return None


def run_visualiser(
    provider: MusicStateProvider,
    *,
    settings: VisualiserSettings | None = None,
    width: int | None = None,
    height: int | None = None,
    background: str | tuple[float, float, float] | RGBA | None = None,
    midi_clock_port: str | None = None,
    use_midi_clock: bool = True,
    on_key_press: KeyHandler | None = None,
    init_only: bool = False,
) -> AnimationDriver | None:
    """可視化ウィンドウを開き、`provider` の音楽状態に同期した描画を実行する。

    Parameters
    ----------
    provider : MusicStateProvider
        `subscribe(callback) -> Subscription` を持つ音楽状態の供給元。
    settings : VisualiserSettings | None
        None で設定ファイル/環境変数から解決。
    width, height : int | None
        ウィンドウサイズ [px]。None で設定（既定 1080x1080）。
    background : str | tuple | None
        背景色（RGBA 0–1 または #RRGGBB/#RRGGBBAA）。None で設定/黒。
    midi_clock_port : str | None
        MIDI クロック入力ポート名（部分一致）。None で `TSV_MIDI_CLOCK_PORT`/設定を使う。
    use_midi_clock : bool, default True
        False で MIDI クロックを試行しない。
    on_key_press : Callable[[int, int], None] | None
        ESC 以外のキー入力を受け取るハンドラ（`symbol, modifiers`）。
    init_only : bool, default False
        True でウィンドウ/GL を作らず、設定解決とドライバ生成だけ行って返す。

    Returns
    -------
    AnimationDriver | None
        `init_only=True` のときは生成したドライバ（描画面なし）。通常実行では None。
    """
    setup_default_logging()

    # ---- ① 設定 ---------------------------------------------------
    cfg = load_config()
    vis_settings = settings if settings is not None else VisualiserSettings.from_config(cfg)
    win_settings = WindowSettings.from_config(cfg)
    if width is not None or height is not None:
        w = int(width) if width is not None else win_settings.width
        h = int(height) if height is not None else win_settings.height
        if w <= 0 or h <= 0:
            raise ValueError(f"window size must be positive, got: {(w, h)}")
        win_settings = replace(win_settings, width=w, height=h)
    if background is not None:
        win_settings = replace(win_settings, background=normalize_color(background))
    clock_settings = MidiClockSettings.from_config(cfg)

    if init_only:
        driver = AnimationDriver(None, settings=vis_settings)
        driver.subscribe(provider)
        return driver

    # ---- ② MIDI クロック（任意）------------------------------------
    hub = MusicStateHub()
    relay = None
    midi_clock = None
    if use_midi_clock:
        port = midi_clock_port if midi_clock_port is not None else clock_settings.port
        midi_clock = setup_midi_clock(port, hub, clock_settings)
    if midi_clock is not None:
        # 供給元の状態は計測 bpm を適用してからハブへ中継する
        relay = provider.subscribe(midi_clock.relay)
        source: MusicStateProvider = hub
    else:
        source = provider

    # 遅延インポート（ヘッドレス環境でのウィンドウ生成を避ける）
    import moderngl
    import pyglet
    from pyglet.window import key

    from engine.core.frame_clock import FrameClock, FrameLoop
    from engine.core.render_window import RenderWindow
    from engine.render.gl_surface import GLSurface

    # ---- ③ Window & ModernGL --------------------------------------
    window = RenderWindow(
        win_settings.width,
        win_settings.height,
        bg_color=win_settings.background,
        caption=win_settings.caption,
    )
    mgl_ctx = moderngl.create_context()
    fb_w, fb_h = window.device_size
    surface = GLSurface(mgl_ctx, fb_w, fb_h, background=win_settings.background)
    resize_subscription = window.subscribe_resize(surface.resize)

    # ---- ④ ドライバ ------------------------------------------------
    driver = AnimationDriver(surface, settings=vis_settings)
    driver.subscribe(source)

    def _draw_main() -> None:
        if driver.state is not AnimationState.IDLE:
            surface.present()

    window.add_draw_callback(_draw_main)

    # ---- ⑤ フレーム駆動 --------------------------------------------
    tickables: list[Tickable] = [driver]
    if midi_clock is not None:
        tickables.insert(0, midi_clock)
    frame_clock = FrameClock(tickables)
    frame_loop = FrameLoop(frame_clock.tick)
    frame_loop.start()

    # ---- ⑥ pyglet イベント -----------------------------------------
    user_key_handler = on_key_press

    @window.event
    def on_key_press(symbol, modifiers):  # noqa: ANN001
        if symbol == key.ESCAPE:
            # on_close を経由させて後始末を必ず通す
            window.dispatch_event("on_close")
            return
        if user_key_handler is not None:
            user_key_handler(symbol, modifiers)

    cleanup_steps: list[Callable[[], None]] = [
        frame_loop.cancel,
        driver.close,
        resize_subscription.close,
    ]
    if relay is not None:
        cleanup_steps.append(relay.close)
    if midi_clock is not None:
        cleanup_steps.append(midi_clock.close)
    cleanup_steps.append(surface.release)

    @window.event
    def on_close():  # noqa: ANN001
        # 冪等なクリーンアップ（1 段の失敗で後続の解放を止めない）
        if getattr(on_close, "_closed", False):
            return
        setattr(on_close, "_closed", True)
        for step in cleanup_steps:
            try:
                step()
            except Exception as e:  # noqa: BLE001
                logger.warning("cleanup step %r failed: %s", step, e)
        pyglet.app.exit()

    pyglet.app.run()
    return None


__all__ = ["run_visualiser", "setup_midi_clock"]
