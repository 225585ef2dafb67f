"""
どこで: `engine.core` の簡易フレームドライバ。
何を: `Tickable` の列を固定順序で呼び出す FrameClock と、それを「次の表示フレームで再実行」
      プリミティブへ登録する FrameLoop。
なぜ: 固定タイムステップやビジーウェイトを持たず、表示リフレッシュ駆動で更新順を統一するため。
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Sequence

from .subscription import Subscription
from .tickable import Tickable

logger = logging.getLogger(__name__)

FrameCallback = Callable[[float], None]


class FrameClock:
    """登録された Tickable を固定順序で実行するだけの極小クラス。"""

    def __init__(self, tickables: Sequence[Tickable]):
        for t in tickables:
            if not isinstance(t, Tickable):
                raise TypeError(f"tick(dt) を持たないオブジェクトは登録できない: {t!r}")
        self._tickables = tuple(tickables)
        self._last_time = time.perf_counter()

    # GUI フレームワークから schedule で呼ばせる
    def tick(self, dt: float | None = None) -> None:
        if dt is None:  # pyglet は dt を渡してくれる
            now = time.perf_counter()  # 他フレームワーク用
            dt = now - self._last_time
            self._last_time = now

        for t in self._tickables:
            t.tick(dt)


class FrameLoop:
    """`callback(dt)` を毎表示フレーム 1 回呼ぶループ。

    - 既定の登録先は `pyglet.clock.schedule`（イベントループの各フレームで 1 回、vsync 同期）。
    - `schedule`/`unschedule` を注入すればテストや他フレームワークでも使える。
    - `start()` と `cancel()` はどちらも冪等。キャンセル後の再開はしない。
    """

    def __init__(
        self,
        callback: FrameCallback,
        *,
        schedule: Callable[[FrameCallback], None] | None = None,
        unschedule: Callable[[FrameCallback], None] | None = None,
    ) -> None:
        if (schedule is None) != (unschedule is None):
            raise ValueError("schedule と unschedule は両方指定するか両方省略すること")
        if schedule is None or unschedule is None:
            # 遅延 import（ヘッドレス環境で pyglet を読み込まないため）
            import pyglet

            schedule = pyglet.clock.schedule
            unschedule = pyglet.clock.unschedule
        self._callback = callback
        self._schedule = schedule
        self._unschedule = unschedule
        self._subscription: Subscription | None = None
        self._cancelled = False

    @property
    def running(self) -> bool:
        return self._subscription is not None and not self._subscription.closed

    def _run(self, dt: float) -> None:
        if self._cancelled:
            return
        self._callback(dt)

    def start(self) -> None:
        if self._cancelled or self._subscription is not None:
            return
        self._schedule(self._run)
        self._subscription = Subscription(lambda: self._unschedule(self._run))
        logger.debug("frame loop started")

    def cancel(self) -> None:
        self._cancelled = True
        if self._subscription is not None:
            self._subscription.close()


__all__ = ["FrameClock", "FrameLoop", "FrameCallback"]
