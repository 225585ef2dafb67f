"""
どこで: `engine.animation.rotation`（Rotation State）。
何を: 音楽状態スナップショットから `VisualiserConfig`（軸ごとの回転速度・開始角・位相原点）を導出し、
      任意時刻の軸ごとの回転角を計算する純関数群。
なぜ: 映像の周期をトラックのループ長に結び付け、音を聞かなくてもリズムが見えるようにするため。

規則:
- 回転速度は「1 小節あたりの 1/4 回転数」。`ticks_to_rotation(loop) = 4 * beat_ticks / loop`。
- `ZA` 軸は常にベースのループ長、更新のたびに 6 軸から一様に 1 軸を選んでパッドのループ長
  （`ZA` を上書きしてもよい）。他の軸は速度 0。
- 開始角は固定のトラック割当て（`XY←kick`, `XZ←clap`, `YZ←ride`, `XA←open_hat`（無ければ
  `closed_hat`）, `YA←shaker`, `ZA←twig`）で `ticks_to_rotation(loop) * 360`。
- 位相原点 `time_origin` はルート識別子が前回と異なるときだけ現在時刻にリセットする。
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from types import MappingProxyType
from typing import Hashable, Mapping

from engine.core.geometry import AXES, Axis
from engine.io.music_state import (
    BASS,
    CLAP,
    CLOSED_HAT,
    KICK,
    OPEN_HAT,
    PAD,
    RIDE,
    SHAKER,
    TWIG,
    MusicState,
)

from .settings import DEFAULT_BEAT_TICKS, DEFAULT_BPM, DEFAULT_FOV

logger = logging.getLogger(__name__)

BEAT_TICKS = DEFAULT_BEAT_TICKS

# 開始角のトラック割当て（先頭から順に、ノートのあるトラックを採用）
STARTING_ANGLE_TRACKS: Mapping[Axis, tuple[str, ...]] = MappingProxyType(
    {
        Axis.XY: (KICK,),
        Axis.XZ: (CLAP,),
        Axis.YZ: (RIDE,),
        Axis.XA: (OPEN_HAT, CLOSED_HAT),
        Axis.YA: (SHAKER,),
        Axis.ZA: (TWIG,),
    }
)


class _NoRoot:
    """音楽状態が無いときのルート識別子。どの実在の値とも等しくない。"""

    def __repr__(self) -> str:
        return "NO_ROOT"


NO_ROOT: Hashable = _NoRoot()


@dataclass(frozen=True)
class VisualiserConfig:
    """音楽状態 1 件から導出した回転設定（更新のたびに丸ごと作り直す）。"""

    fov: float
    bpm: float
    rotation_speed: Mapping[Axis, float]
    rotation_starting_angle: Mapping[Axis, float]
    time_origin: float
    root_identity: Hashable = NO_ROOT
    kick_loop_ticks: int = 0

    @property
    def is_idle(self) -> bool:
        return self.root_identity is NO_ROOT


def _zeros() -> Mapping[Axis, float]:
    return MappingProxyType({axis: 0.0 for axis in AXES})


def initial_config(
    *, now_ms: float, fov: float = DEFAULT_FOV, default_bpm: float = DEFAULT_BPM
) -> VisualiserConfig:
    """音楽状態を受け取る前の設定（Idle）。"""
    return VisualiserConfig(
        fov=float(fov),
        bpm=float(default_bpm),
        rotation_speed=_zeros(),
        rotation_starting_angle=_zeros(),
        time_origin=float(now_ms),
    )


def ticks_to_rotation(loop_ticks: float | None, beat_ticks: int = BEAT_TICKS) -> float:
    """ループ長 [tick] を「1 小節あたりの回転量」に変換する。0/負/欠損は 0。"""
    if loop_ticks is None:
        return 0.0
    ticks = float(loop_ticks)
    if not math.isfinite(ticks) or ticks <= 0.0:
        return 0.0
    return (4.0 * float(beat_ticks)) / ticks


def _starting_angle(state: MusicState, tracks: tuple[str, ...], beat_ticks: int) -> float:
    for track in tracks:
        if state.has_notes(track):
            return ticks_to_rotation(state.loop(track), beat_ticks) * 360.0
    return 0.0


def derive_config(
    music_state: MusicState | None,
    previous: VisualiserConfig | None,
    *,
    now_ms: float,
    rng: random.Random,
    beat_ticks: int = BEAT_TICKS,
    fov: float = DEFAULT_FOV,
    default_bpm: float = DEFAULT_BPM,
) -> VisualiserConfig:
    """音楽状態から新しい `VisualiserConfig` を導出する。

    Parameters
    ----------
    music_state : MusicState | None
        `None` は Idle（全軸 0、既定 bpm）。
    previous : VisualiserConfig | None
        直前の設定。ルート識別子が同じなら `time_origin` を引き継ぐ。
    now_ms : float
        現在時刻 [ms]。位相リセット時の新しい原点。
    rng : random.Random
        パッドのループ長を割り当てる軸の抽選に使う（テストで再現可能にするため注入）。
    """
    if music_state is None:
        bpm = float(default_bpm)
        speeds = _zeros()
        angles = _zeros()
        root: Hashable = NO_ROOT
        kick_loop = 0
    else:
        bpm = float(music_state.bpm) if music_state.bpm is not None else float(default_bpm)

        speed_map = {axis: 0.0 for axis in AXES}
        speed_map[Axis.ZA] = ticks_to_rotation(music_state.loop(BASS), beat_ticks)
        pad_axis = rng.choice(AXES)
        speed_map[pad_axis] = ticks_to_rotation(music_state.loop(PAD), beat_ticks)
        logger.debug("pad loop bound to axis %s", pad_axis.label)
        speeds = MappingProxyType(speed_map)

        angles = MappingProxyType(
            {
                axis: _starting_angle(music_state, STARTING_ANGLE_TRACKS[axis], beat_ticks)
                for axis in AXES
            }
        )
        root = music_state.root_identity
        kick_loop = music_state.loop(KICK)

    if previous is None or root != previous.root_identity:
        time_origin = float(now_ms)
        if previous is not None:
            logger.debug("root identity changed %r -> %r; phase reset", previous.root_identity, root)
    else:
        time_origin = previous.time_origin

    return VisualiserConfig(
        fov=float(fov),
        bpm=bpm,
        rotation_speed=speeds,
        rotation_starting_angle=angles,
        time_origin=time_origin,
        root_identity=root,
        kick_loop_ticks=kick_loop,
    )


def get_angle(starting_angle: float, quarter_turns_per_bar: float, bars_elapsed: float) -> float:
    """`starting_angle + bars_elapsed * quarter_turns_per_bar * 90`（剰余はとらない）。"""
    return starting_angle + bars_elapsed * quarter_turns_per_bar * 90.0


def ms_per_bar(bpm: float) -> float:
    """4/4 拍子 1 小節の長さ [ms]。"""
    if not bpm > 0.0:
        raise ValueError(f"bpm must be positive, got {bpm!r}")
    return 60000.0 / (bpm / 4.0)


def bars_elapsed(now_ms: float, time_origin_ms: float, bpm: float) -> float:
    return (now_ms - time_origin_ms) / ms_per_bar(bpm)


def current_angles(config: VisualiserConfig, now_ms: float) -> Mapping[Axis, float]:
    """`now_ms` 時点の全 6 軸の回転角 [deg]。"""
    bars = bars_elapsed(now_ms, config.time_origin, config.bpm)
    return MappingProxyType(
        {
            axis: get_angle(
                config.rotation_starting_angle.get(axis, 0.0),
                config.rotation_speed.get(axis, 0.0),
                bars,
            )
            for axis in AXES
        }
    )


__all__ = [
    "BEAT_TICKS",
    "NO_ROOT",
    "STARTING_ANGLE_TRACKS",
    "VisualiserConfig",
    "bars_elapsed",
    "current_angles",
    "derive_config",
    "get_angle",
    "initial_config",
    "ms_per_bar",
    "ticks_to_rotation",
]
