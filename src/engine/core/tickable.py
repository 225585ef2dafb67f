"""
どこで: `engine.core` の更新インターフェース。
何を: 1 フレーム更新 `tick(dt)` を持つ `Tickable` Protocol（実行時チェック可能）。
なぜ: アニメーションドライバや MIDI クロックを、FrameClock から一様に扱うため。
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class Tickable(Protocol):
    """1 フレーム分の更新を行うインターフェース。

    `dt` は前フレームからの経過秒。アニメーションの位相は `dt` の積算ではなく
    実時間から求めるため、実装側は `dt` を診断用途にだけ使ってよい。
    """

    def tick(self, dt: float) -> None: ...
