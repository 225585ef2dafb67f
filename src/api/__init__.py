"""
どこで: `api` 入口（高レベル公開 API）。
何を: 実行ランナー `run_visualiser` と、供給元として使う `MusicState`/`MusicStateHub` を再輸出。
なぜ: 利用者が単一名前空間から音楽状態の供給→可視化の実行まで完結できるようにするため。

Usage:
    from api import MusicState, MusicStateHub, run

    hub = MusicStateHub()
    hub.publish(MusicState(bpm=124, root_identity="A", loop_ticks={"kick": 7680}))
    run(hub)
"""

from engine.animation.settings import VisualiserSettings
from engine.io.music_state import MusicState, MusicStateHub

from .visualiser import run_visualiser as run
from .visualiser import run_visualiser as run_visualiser

__all__ = [
    "run_visualiser",  # 実行（詳細指定）
    "run",  # 実行（エイリアス、簡易）
    "MusicState",
    "MusicStateHub",
    "VisualiserSettings",
]

__version__ = "2026.10"
