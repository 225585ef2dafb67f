"""
どこで: `engine.io` の音楽状態層。
何を: 外部の音楽状態スナップショット `MusicState`、購読プロトコル `MusicStateProvider`、
      プロセス内の購読ハブ `MusicStateHub` を提供する。
なぜ: 音楽状態の供給元（ジェネレータ/YAML デモ/MIDI クロック）をアニメーション層から切り離し、
      「最新の 1 状態だけが意味を持つ」契約を 1 か所で表現するため。

状態の形:
    MusicState(
        bpm=128.0,                       # 省略時は None（既定 bpm を使う）
        root_identity=5,                 # 比較可能な値。変化で位相がリセットされる
        loop_ticks={"kick": 7680, ...},  # トラック名 → ループ長 [tick]（0 は空パターン）
        note_counts={"kick": 4, ...},    # 任意。トラックのノート数（0 はノートなし）
    )

`None` は「音楽状態なし」（Idle）を表す。
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Hashable, Mapping, Optional, Protocol

from engine.core.subscription import Subscription

logger = logging.getLogger(__name__)

# トラック名（ループ長マッピングのキー）
BASS = "bass"
PAD = "pad"
KICK = "kick"
CLAP = "clap"
RIDE = "ride"
OPEN_HAT = "open_hat"
CLOSED_HAT = "closed_hat"
SHAKER = "shaker"
TWIG = "twig"

TRACKS: tuple[str, ...] = (BASS, PAD, KICK, CLAP, RIDE, OPEN_HAT, CLOSED_HAT, SHAKER, TWIG)


class MalformedMusicStateError(ValueError):
    """音楽状態の辞書表現が契約を満たさない場合に送出される例外。"""


def _freeze_counts(values: Mapping[str, int] | None) -> Mapping[str, int]:
    return MappingProxyType({str(k): int(v) for k, v in (values or {}).items()})


@dataclass(frozen=True)
class MusicState:
    """ある時点の音楽状態（不変スナップショット）。"""

    bpm: float | None
    root_identity: Hashable
    loop_ticks: Mapping[str, int] = field(default_factory=dict)
    note_counts: Mapping[str, int] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "bpm", _parse_bpm(self.bpm))
        object.__setattr__(self, "loop_ticks", _freeze_counts(self.loop_ticks))
        if self.note_counts is not None:
            object.__setattr__(self, "note_counts", _freeze_counts(self.note_counts))

    def loop(self, track: str) -> int:
        """トラックのループ長 [tick]。未知のトラックは 0。"""
        return int(self.loop_ticks.get(track, 0))

    def has_notes(self, track: str) -> bool:
        """トラックに発音ノートがあるか。

        `note_counts` にトラックがあればその件数で、無ければループ長 > 0 で判定する。
        """
        if self.note_counts is not None and track in self.note_counts:
            return self.note_counts[track] > 0
        return self.loop(track) > 0

    def with_bpm(self, bpm: float) -> "MusicState":
        return replace(self, bpm=float(bpm))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> Optional["MusicState"]:
        """辞書（YAML のデモ状態など）から `MusicState` を組み立てる。

        - `None` または空辞書は `None`（Idle）
        - 不正な値は `MalformedMusicStateError`
        """
        if data is None:
            return None
        if not isinstance(data, Mapping):
            raise MalformedMusicStateError(f"music state must be a mapping, got {type(data)!r}")
        if not data:
            return None

        bpm = _parse_bpm(data.get("bpm"))
        root = data.get("root_identity")
        try:
            hash(root)
        except TypeError as e:
            raise MalformedMusicStateError(f"root_identity must be hashable: {root!r}") from e

        loop_ticks = _parse_track_counts(data.get("loop_ticks"), "loop_ticks")
        raw_notes = data.get("note_counts")
        note_counts = None if raw_notes is None else _parse_track_counts(raw_notes, "note_counts")
        return cls(bpm=bpm, root_identity=root, loop_ticks=loop_ticks, note_counts=note_counts)


def _parse_bpm(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise MalformedMusicStateError(f"bpm must be a number, got {value!r}")
    try:
        bpm = float(value)
    except (TypeError, ValueError) as e:
        raise MalformedMusicStateError(f"bpm must be a number, got {value!r}") from e
    if not math.isfinite(bpm) or bpm <= 0.0:
        raise MalformedMusicStateError(f"bpm must be positive and finite, got {value!r}")
    return bpm


def _parse_track_counts(value: Any, name: str) -> dict[str, int]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise MalformedMusicStateError(f"{name} must be a mapping of track -> int")
    out: dict[str, int] = {}
    for track, raw in value.items():
        if isinstance(raw, bool):
            raise MalformedMusicStateError(f"{name}[{track!r}] must be an integer, got {raw!r}")
        try:
            count = int(raw)
        except (TypeError, ValueError) as e:
            raise MalformedMusicStateError(
                f"{name}[{track!r}] must be an integer, got {raw!r}"
            ) from e
        if count < 0:
            raise MalformedMusicStateError(f"{name}[{track!r}] must be >= 0, got {count}")
        out[str(track)] = count
    return out


def coerce_music_state(value: Any) -> MusicState | None:
    """`MusicState`/辞書/`None` を `MusicState | None` に正規化する。不正なら例外。"""
    if value is None or isinstance(value, MusicState):
        return value
    return MusicState.from_mapping(value)


MusicStateCallback = Callable[[Optional[MusicState]], None]


class MusicStateProvider(Protocol):
    """音楽状態の供給元。`subscribe()` は解除ハンドルを返す。"""

    def subscribe(self, callback: MusicStateCallback) -> Subscription: ...


class MusicStateHub:
    """プロセス内の音楽状態ハブ（publish/subscribe）。

    - `subscribe()` 時点で既に publish 済みなら、最新状態を即座に 1 回通知する
    - 通知はロック外で行う（コールバック内からの publish/unsubscribe を許容）
    - 解除は `Subscription.close()`（冪等）
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._callbacks: list[MusicStateCallback] = []
        self._latest: MusicState | None = None
        self._published = False

    @property
    def latest(self) -> MusicState | None:
        with self._lock:
            return self._latest

    def subscribe(self, callback: MusicStateCallback) -> Subscription:
        with self._lock:
            self._callbacks.append(callback)
            replay = self._published
            latest = self._latest

        def _release() -> None:
            with self._lock:
                try:
                    self._callbacks.remove(callback)
                except ValueError:
                    pass

        if replay:
            callback(latest)
        return Subscription(_release)

    def publish(self, state: MusicState | None) -> None:
        with self._lock:
            self._latest = state
            self._published = True
            callbacks = tuple(self._callbacks)
        logger.debug("music state published to %d subscriber(s)", len(callbacks))
        for cb in callbacks:
            cb(state)

    def clear(self) -> None:
        """Idle（`None`）を publish する。"""
        self.publish(None)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._callbacks)


__all__ = [
    "BASS",
    "CLAP",
    "CLOSED_HAT",
    "KICK",
    "MalformedMusicStateError",
    "MusicState",
    "MusicStateCallback",
    "MusicStateHub",
    "MusicStateProvider",
    "OPEN_HAT",
    "PAD",
    "RIDE",
    "SHAKER",
    "TRACKS",
    "TWIG",
    "coerce_music_state",
]
