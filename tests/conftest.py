"""共通フィクスチャ。

- 乱数シード固定
- 小さな形状・音楽状態・記録用描画面・手動時計
- `TSV_*` 環境変数の隔離
"""

from __future__ import annotations

import random
from typing import Iterator

import numpy as np
import pytest

from common import settings as env_settings
from engine.core.geometry import Shape, build_hypercube
from engine.io.music_state import MusicState
from tests._utils.dummies import FakeClock, RecordingSurface

BEAT = 3840


@pytest.fixture(scope="session", autouse=True)
def np_seed() -> None:
    """NumPy の乱数を固定。"""
    np.random.seed(12345)


@pytest.fixture(autouse=True)
def clean_tsv_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """テストごとに `TSV_*` を未設定へ戻し、設定スナップショットを再読込する。"""
    for name in ("TSV_LOG_LEVEL", "TSV_DEBUG_FRAMES", "TSV_RANDOM_SEED", "TSV_MIDI_CLOCK_PORT"):
        monkeypatch.delenv(name, raising=False)
    env_settings.reload_from_env()
    yield
    env_settings.reload_from_env()


@pytest.fixture()
def square() -> Shape:
    return build_hypercube(2, 100)


@pytest.fixture()
def tesseract() -> Shape:
    return build_hypercube(4, 100)


@pytest.fixture()
def rng() -> random.Random:
    return random.Random(7)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(start_ms=1000.0)


@pytest.fixture()
def surface() -> RecordingSurface:
    return RecordingSurface(400, 300)


@pytest.fixture()
def music_state() -> MusicState:
    return MusicState(
        bpm=120.0,
        root_identity=5,
        loop_ticks={
            "bass": 4 * BEAT,
            "pad": 8 * BEAT,
            "kick": 2 * BEAT,
            "clap": 4 * BEAT,
            "ride": BEAT,
            "open_hat": 0,
            "closed_hat": 2 * BEAT,
            "shaker": 16 * BEAT,
            "twig": 0,
        },
    )
