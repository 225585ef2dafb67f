"""
どこで: `engine.animation.driver`（Animation Driver）。
何を: 音楽状態の更新を回転設定へ確定し（最新 1 件のみ保持）、毎フレームの `tick(dt)` で
      経過時間 → 不透明度/視野角/回転角 → 新しい形状スナップショット → Projector 描画を行う。
なぜ: 時間とスケジューリングを 1 か所に閉じ込め、Rotation State/Projector を純関数のまま保つため。

状態遷移:
    IDLE      --(非空の音楽状態)-->            FADING_IN
    FADING_IN --(経過 >= フェード時間)-->       STEADY
    FADING_IN/STEADY --(ルート識別子の変化)--> FADING_IN（位相原点がリセットされる）
    任意       --(音楽状態が空/不正)-->          IDLE（不透明度 0、描画しない）

並行性:
- `on_music_state()` は任意のスレッドから呼ばれてよい。ロック下で設定を丸ごと差し替える（後勝ち）。
- `tick()` はフレームループのスレッドだけが呼ぶ。形状の回転/位置はドライバだけが書き換える。
"""

from __future__ import annotations

import logging
import math
import random
import threading
import time
from enum import Enum
from typing import Any, Callable

from common.types import Millis
from engine.core.geometry import Plane, Shape, build_hypercube
from engine.core.subscription import Subscription
from engine.io.music_state import MusicState, MusicStateProvider, coerce_music_state
from engine.render.projector import Camera, DrawStyle, draw_scene
from engine.render.surface import DrawingSurface

from .rotation import VisualiserConfig, current_angles, derive_config, initial_config
from .settings import VisualiserSettings

logger = logging.getLogger(__name__)


class AnimationState(Enum):
    IDLE = "idle"
    FADING_IN = "fading_in"
    STEADY = "steady"


def fade_opacity(elapsed_ms: float, fade_ms: float) -> float:
    """二次のフェードイン `min(1, (elapsed / fade)^2)`。"""
    if fade_ms <= 0.0:
        return 1.0
    if elapsed_ms <= 0.0:
        return 0.0
    return min(1.0, (elapsed_ms / fade_ms) ** 2)


def beats_in_loop(loop_ticks: int, beat_ticks: int) -> float:
    """ループ長 [tick] の半分を拍数で表したもの（視野角の振動周期に使う）。"""
    if beat_ticks <= 0:
        return 0.0
    return float(loop_ticks) / float(beat_ticks) / 2.0


def field_of_view(
    elapsed_ms: float,
    bpm: float,
    beats_in_kick_loop: float,
    min_fov: float,
    max_fov: float,
) -> float:
    """キックのループ長に同期してゆっくり振動する視野角。

    位相 `elapsed/60000 * (bpm / beats) + π` の余弦を帯域 `[min_fov, max_fov]` に写す。
    開始時は `min_fov`。`beats <= 0` のときは振動させず `min_fov` を返す。
    """
    if beats_in_kick_loop <= 0.0 or not math.isfinite(beats_in_kick_loop):
        return float(min_fov)
    phase = (elapsed_ms / 60000.0) * (bpm / beats_in_kick_loop) + math.pi
    return min_fov + (math.cos(phase) + 1.0) / 2.0 * (max_fov - min_fov)


def _perf_ms() -> Millis:
    return time.perf_counter() * 1000.0


class AnimationDriver:
    """音楽状態に位相同期した超立方体アニメーション（`Tickable`）。

    Parameters
    ----------
    surface : DrawingSurface | None
        描画先。None や未準備の間は描画をスキップする（状態遷移は進む）。
    settings : VisualiserSettings | None
        省略時は既定値。
    clock : Callable[[], float] | None
        現在時刻 [ms] を返す関数。省略時は `time.perf_counter()` ベース。
    rng : random.Random | None
        パッド軸の抽選に使う乱数源。省略時は `settings.random_seed` で初期化。
    """

    def __init__(
        self,
        surface: DrawingSurface | None,
        *,
        settings: VisualiserSettings | None = None,
        clock: Callable[[], float] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._settings = settings if settings is not None else VisualiserSettings()
        self._clock = clock if clock is not None else _perf_ms
        self._rng = rng if rng is not None else random.Random(self._settings.random_seed)
        self._surface = surface
        self._style = DrawStyle(
            trail_color=self._settings.trail_color,
            line_color=self._settings.line_color,
            line_width=self._settings.line_width,
        )

        self._lock = threading.Lock()
        self._config: VisualiserConfig = initial_config(
            now_ms=self._clock(), fov=self._settings.fov, default_bpm=self._settings.default_bpm
        )
        self._active = False

        self._shape: Shape = build_hypercube(self._settings.dimensions, self._settings.side_length)
        self._camera = Camera(position={Plane.Z: self._settings.camera_z}, fov=self._config.fov)
        self._state = AnimationState.IDLE
        self._opacity = 0.0
        self._frames = 0

        self._subscription: Subscription | None = None
        self._closed = False

    # ---- 参照 ----
    @property
    def state(self) -> AnimationState:
        return self._state

    @property
    def opacity(self) -> float:
        return self._opacity

    @property
    def config(self) -> VisualiserConfig:
        with self._lock:
            return self._config

    @property
    def shape(self) -> Shape:
        return self._shape

    @property
    def camera(self) -> Camera:
        return self._camera

    @property
    def surface(self) -> DrawingSurface | None:
        return self._surface

    @surface.setter
    def surface(self, surface: DrawingSurface | None) -> None:
        self._surface = surface

    @property
    def closed(self) -> bool:
        return self._closed

    # ---- 音楽状態 ----
    def on_music_state(self, state: MusicState | Any | None) -> None:
        """音楽状態の更新を回転設定に確定する。不正な状態は Idle として扱う。"""
        try:
            parsed = coerce_music_state(state)
        except ValueError as e:
            logger.warning("malformed music state; treating as idle: %s", e)
            parsed = None

        with self._lock:
            if self._closed:
                return
            self._config = derive_config(
                parsed,
                self._config,
                now_ms=self._clock(),
                rng=self._rng,
                beat_ticks=self._settings.beat_ticks,
                fov=self._settings.fov,
                default_bpm=self._settings.default_bpm,
            )
            self._active = parsed is not None

    def subscribe(self, provider: MusicStateProvider) -> Subscription:
        """音楽状態の供給元を購読する（既存の購読は解除して差し替える）。"""
        if self._subscription is not None:
            self._subscription.close()
        self._subscription = provider.subscribe(self.on_music_state)
        return self._subscription

    def close(self) -> None:
        """購読を 1 回だけ解除する。2 回目以降は no-op。"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        if self._subscription is not None:
            self._subscription.close()
        logger.debug("animation driver closed")

    # ---- フレーム ----
    def _transition(self, new_state: AnimationState) -> None:
        if new_state is not self._state:
            logger.info("animation state: %s -> %s", self._state.value, new_state.value)
            self._state = new_state

    def tick(self, dt: float) -> None:
        if self._closed:
            return
        with self._lock:
            config, active = self._config, self._active

        if not active:
            self._transition(AnimationState.IDLE)
            self._opacity = 0.0
            return

        now = self._clock()
        settings = self._settings
        elapsed = max(0.0, now - config.time_origin)
        if elapsed < settings.fade_ms:
            self._transition(AnimationState.FADING_IN)
            self._opacity = fade_opacity(elapsed, settings.fade_ms)
        else:
            self._transition(AnimationState.STEADY)
            self._opacity = 1.0

        fov = field_of_view(
            elapsed,
            config.bpm,
            beats_in_loop(config.kick_loop_ticks, settings.beat_ticks),
            settings.min_fov,
            settings.max_fov,
        )
        angles = current_angles(config, now)
        self._shape = self._shape.with_pose(rotation=angles)
        self._camera = Camera(position=self._camera.position, fov=fov)

        drawn = draw_scene(
            self._surface, [self._shape], self._camera, style=self._style, opacity=self._opacity
        )
        self._frames += 1
        if settings.debug_frames:
            logger.debug(
                "frame %d dt=%.4f elapsed=%.1fms opacity=%.3f fov=%.6f drawn=%s",
                self._frames,
                dt,
                elapsed,
                self._opacity,
                fov,
                drawn,
            )


__all__ = [
    "AnimationDriver",
    "AnimationState",
    "beats_in_loop",
    "fade_opacity",
    "field_of_view",
]
