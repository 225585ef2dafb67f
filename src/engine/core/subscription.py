"""
どこで: `engine.core` の購読ハンドル。
何を: 解除処理をちょうど 1 回だけ実行する `Subscription`。
なぜ: 音楽状態の購読・フレームループ・リサイズ通知の後始末を、二重解除でも例外にしない形で統一するため。
"""

from __future__ import annotations

import threading
from typing import Callable


class Subscription:
    """`close()` が冪等な解除ハンドル。

    - 初回の `close()` でのみ `release` を呼ぶ。2 回目以降は no-op。
    - `with` 文でも使える（抜けるときに `close()`）。
    """

    __slots__ = ("_release", "_lock", "_closed")

    def __init__(self, release: Callable[[], None] | None = None) -> None:
        self._release = release
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            release, self._release = self._release, None
        if release is not None:
            release()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Subscription(closed={self._closed})"


__all__ = ["Subscription"]
