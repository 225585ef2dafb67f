"""
どこで: `engine.animation.settings`。
何を: YAML 構成（`visualiser`/`window`/`midi_clock` セクション）と環境変数（`TSV_*`）から、
      型付きの不変設定 `VisualiserSettings`/`WindowSettings`/`MidiClockSettings` を解決する。
なぜ: 既定値・検証・色の正規化を 1 か所に集約し、ドライバ/ランナーを辞書アクセスから解放するため。

既定値は元の可視化と同じ:
    side_length=200, fov 帯域 [1.002, 1.0025], fade=3000ms, 1 拍=3840 tick, bpm=120,
    軌跡 rgba(0,0,0,0.1), 線 rgba(255,255,255,0.125), 線幅 2
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Mapping, TypeVar

from common.settings import get as get_env_settings
from common.types import RGBA
from util.color import normalize_color
from util.utils import config_section, load_config

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SIDE_LENGTH = 200.0
DEFAULT_FOV = 1.0025
DEFAULT_MIN_FOV = 1.002
DEFAULT_MAX_FOV = 1.0025
DEFAULT_FADE_MS = 3000.0
DEFAULT_BEAT_TICKS = 3840
DEFAULT_BPM = 120.0
DEFAULT_TRAIL_COLOR: RGBA = (0.0, 0.0, 0.0, 0.1)
DEFAULT_LINE_COLOR: RGBA = (1.0, 1.0, 1.0, 0.125)
DEFAULT_LINE_WIDTH = 2.0


def _coerce(
    section: Mapping[str, Any],
    key: str,
    default: T,
    convert: Callable[[Any], T],
    valid: Callable[[T], bool] = lambda _v: True,
) -> T:
    """`section[key]` を変換・検証する。欠損は既定値、不正値は警告して既定値。"""
    if key not in section or section[key] is None:
        return default
    raw = section[key]
    try:
        value = convert(raw)
    except (TypeError, ValueError):
        logger.warning("invalid config value %s=%r; using default %r", key, raw, default)
        return default
    if not valid(value):
        logger.warning("out-of-range config value %s=%r; using default %r", key, raw, default)
        return default
    return value


def _positive(v: float) -> bool:
    return math.isfinite(v) and v > 0.0


def _non_negative(v: float) -> bool:
    return math.isfinite(v) and v >= 0.0


@dataclass(frozen=True)
class VisualiserSettings:
    """可視化エンジンの設定（不変）。"""

    dimensions: int = 4
    side_length: float = DEFAULT_SIDE_LENGTH
    fov: float = DEFAULT_FOV
    min_fov: float = DEFAULT_MIN_FOV
    max_fov: float = DEFAULT_MAX_FOV
    fade_ms: float = DEFAULT_FADE_MS
    beat_ticks: int = DEFAULT_BEAT_TICKS
    default_bpm: float = DEFAULT_BPM
    camera_z: float = DEFAULT_SIDE_LENGTH
    trail_color: RGBA = DEFAULT_TRAIL_COLOR
    line_color: RGBA = DEFAULT_LINE_COLOR
    line_width: float = DEFAULT_LINE_WIDTH
    random_seed: int | None = None
    debug_frames: bool = False

    def __post_init__(self) -> None:
        if not _positive(self.min_fov) or not _positive(self.max_fov):
            raise ValueError(f"fov band must be positive, got [{self.min_fov}, {self.max_fov}]")
        if self.min_fov > self.max_fov:
            raise ValueError(f"min_fov must be <= max_fov, got [{self.min_fov}, {self.max_fov}]")

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any] | None = None) -> "VisualiserSettings":
        """構成辞書（省略時は `load_config()`）と環境変数から設定を解決する。"""
        if cfg is None:
            cfg = load_config()
        sec = config_section(dict(cfg), "visualiser")
        env = get_env_settings()

        min_fov = _coerce(sec, "min_fov", DEFAULT_MIN_FOV, float, _positive)
        max_fov = _coerce(sec, "max_fov", DEFAULT_MAX_FOV, float, _positive)
        if min_fov > max_fov:
            logger.warning("min_fov > max_fov in config; swapping (%s, %s)", min_fov, max_fov)
            min_fov, max_fov = max_fov, min_fov
        side_length = _coerce(sec, "side_length", DEFAULT_SIDE_LENGTH, float, _positive)

        seed = env.RANDOM_SEED
        if seed is None:
            seed = _coerce(sec, "random_seed", None, int)  # type: ignore[arg-type]

        return cls(
            dimensions=_coerce(sec, "dimensions", 4, int, lambda d: 1 <= d <= 4),
            side_length=side_length,
            fov=_coerce(sec, "fov", DEFAULT_FOV, float, _positive),
            min_fov=min_fov,
            max_fov=max_fov,
            fade_ms=_coerce(sec, "fade_ms", DEFAULT_FADE_MS, float, _non_negative),
            beat_ticks=_coerce(sec, "beat_ticks", DEFAULT_BEAT_TICKS, int, lambda t: t > 0),
            default_bpm=_coerce(sec, "default_bpm", DEFAULT_BPM, float, _positive),
            camera_z=_coerce(sec, "camera_z", side_length, float, math.isfinite),
            trail_color=_coerce(sec, "trail_color", DEFAULT_TRAIL_COLOR, normalize_color),
            line_color=_coerce(sec, "line_color", DEFAULT_LINE_COLOR, normalize_color),
            line_width=_coerce(sec, "line_width", DEFAULT_LINE_WIDTH, float, _positive),
            random_seed=seed,
            debug_frames=bool(env.DEBUG_FRAMES),
        )


@dataclass(frozen=True)
class WindowSettings:
    width: int = 1080
    height: int = 1080
    background: RGBA = (0.0, 0.0, 0.0, 1.0)
    caption: str = "Tesseract"

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any] | None = None) -> "WindowSettings":
        if cfg is None:
            cfg = load_config()
        sec = config_section(dict(cfg), "window")
        return cls(
            width=_coerce(sec, "width", 1080, int, lambda v: v > 0),
            height=_coerce(sec, "height", 1080, int, lambda v: v > 0),
            background=_coerce(sec, "background", (0.0, 0.0, 0.0, 1.0), normalize_color),
            caption=_coerce(sec, "caption", "Tesseract", str),
        )


@dataclass(frozen=True)
class MidiClockSettings:
    """MIDI クロック入力の設定。`port` が None なら MIDI クロックを使わない。"""

    port: str | None = None
    window: int = 96
    min_change_bpm: float = 0.5

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any] | None = None) -> "MidiClockSettings":
        if cfg is None:
            cfg = load_config()
        sec = config_section(dict(cfg), "midi_clock")
        port = get_env_settings().MIDI_CLOCK_PORT
        if port is None:
            port = _coerce(sec, "port", None, str)  # type: ignore[arg-type]
        return cls(
            port=port or None,
            window=_coerce(sec, "window", 96, int, lambda v: v >= 2),
            min_change_bpm=_coerce(sec, "min_change_bpm", 0.5, float, _non_negative),
        )


__all__ = [
    "DEFAULT_BEAT_TICKS",
    "DEFAULT_BPM",
    "DEFAULT_FADE_MS",
    "DEFAULT_FOV",
    "DEFAULT_LINE_COLOR",
    "DEFAULT_LINE_WIDTH",
    "DEFAULT_MAX_FOV",
    "DEFAULT_MIN_FOV",
    "DEFAULT_SIDE_LENGTH",
    "DEFAULT_TRAIL_COLOR",
    "MidiClockSettings",
    "VisualiserSettings",
    "WindowSettings",
]
