"""
MIDI クロックからのテンポ推定（IO モジュール）

本モジュールは、外部機器（DAW/シーケンサ/ドラムマシン）が送出する MIDI クロック
（4 分音符あたり 24 パルス）を受信し、パルス間隔から bpm を推定して、最新の音楽状態に
反映した状態を `MusicStateHub` へ再 publish する。

主な責務:
- MIDI 入力ポートの検索とオープン（存在しない場合は `InvalidPortError`）。
- クロック/スタート/ストップ/コンティニューの各メッセージの処理。
- スライディングウィンドウ（既定 96 パルス = 4 拍）でのパルス間隔平均による bpm 推定。
- 推定 bpm が現在の状態の bpm から `min_change_bpm` 以上ずれたときだけ再 publish。

設計メモ:
- 受信はバックエンドのコールバックスレッドで行い、到着時刻をその場で記録する。
  （`iter_pending()` でまとめて取り出すと、フレーム内の到着時刻が潰れてしまう）
- 上流の更新は `relay()` で計測済み bpm を適用してから 1 回だけ publish する。
  `tick()` が publish するのはテンポそのものが変わったときだけ。

使用例:
    hub = MusicStateHub()
    clock = MidiClockTempo.open("IAC Driver", hub)
    relay = provider.subscribe(clock.relay)
    frame_clock = FrameClock([clock, driver])
    ...
    relay.close()
    clock.close()
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Any, Callable

import mido

from .music_state import MusicState, MusicStateHub

logger = logging.getLogger(__name__)


class InvalidPortError(Exception):
    """要求された MIDI ポート名が存在しない場合に送出される例外。"""


def find_input_port(name_fragment: str) -> str | None:
    """`name_fragment` を含む最初の入力ポート名を返す。見つからなければ None。"""
    try:
        return [port for port in mido.get_input_names() if name_fragment in port][0]  # type: ignore
    except IndexError:
        return None


def show_available_ports() -> None:
    logger.info("Available MIDI input ports: %s", mido.get_input_names())  # type: ignore


class MidiClockTempo:
    PULSES_PER_QUARTER = 24

    def __init__(
        self,
        hub: MusicStateHub,
        *,
        window: int = 96,
        min_change_bpm: float = 0.5,
        now: Callable[[], float] = time.perf_counter,
    ) -> None:
        """
        hub: 推定 bpm を反映した状態の再 publish 先
        window: bpm 推定に使うパルス間隔の数（>= 1）
        now: パルス到着時刻 [sec] を返す関数
        """
        if window < 1:
            raise ValueError(f"window must be >= 1, got {window}")
        self.hub = hub
        self.window = int(window)
        self.min_change_bpm = float(min_change_bpm)
        self._now = now
        self._lock = threading.Lock()
        self._pulses: deque[float] = deque(maxlen=self.window + 1)
        self._running = True
        self.inport: Any = None
        self.port_name: str | None = None

    def __repr__(self) -> str:
        return f"MidiClockTempo(port_name={self.port_name}, window={self.window})"

    @classmethod
    def open(cls, port_name: str, hub: MusicStateHub, **kwargs: Any) -> "MidiClockTempo":
        """`port_name` を部分一致で検索して入力ポートを開く。無ければ `InvalidPortError`。"""
        clock = cls(hub, **kwargs)
        resolved = find_input_port(port_name)
        if resolved is None:
            available = mido.get_input_names()  # type: ignore
            logger.error("Invalid port name: %s", port_name)
            logger.info("Available input ports: %s", available)
            raise InvalidPortError(f"Invalid port name: {port_name}. Available: {available}")
        clock.port_name = resolved
        clock.inport = mido.open_input(resolved, callback=clock.feed)  # type: ignore
        logger.info("listening for MIDI clock on %s", resolved)
        return clock

    # ---- 受信 ----
    def feed(self, msg: Any, timestamp: float | None = None) -> None:
        """MIDI メッセージを 1 件処理する（コールバックスレッドから呼ばれる）。"""
        t = self._now() if timestamp is None else float(timestamp)
        kind = getattr(msg, "type", None)
        with self._lock:
            if kind == "clock":
                if self._running:
                    self._pulses.append(t)
            elif kind == "start":
                self._pulses.clear()
                self._running = True
            elif kind == "continue":
                self._running = True
            elif kind == "stop":
                self._pulses.clear()
                self._running = False

    def estimate_bpm(self) -> float | None:
        """現在のウィンドウから bpm を推定する。パルスが 2 つ未満なら None。"""
        with self._lock:
            if len(self._pulses) < 2:
                return None
            span = self._pulses[-1] - self._pulses[0]
            intervals = len(self._pulses) - 1
        if span <= 0.0:
            return None
        seconds_per_pulse = span / intervals
        return 60.0 / (seconds_per_pulse * self.PULSES_PER_QUARTER)

    def _with_measured_bpm(self, state: MusicState) -> MusicState:
        bpm = self.estimate_bpm()
        if bpm is None:
            return state
        if state.bpm is not None and abs(state.bpm - bpm) < self.min_change_bpm:
            return state
        return state.with_bpm(bpm)

    def relay(self, state: Any) -> None:
        """上流の状態に計測済みの bpm を適用してハブへ 1 回だけ publish する。

        供給元 `subscribe()` のコールバックとして使う。`MusicState` 以外（`None`/辞書）は
        そのまま流し、正規化は購読側に任せる。
        """
        if isinstance(state, MusicState):
            state = self._with_measured_bpm(state)
        self.hub.publish(state)

    # ---- Tickable ----
    def tick(self, dt: float) -> None:
        state = self.hub.latest
        if not isinstance(state, MusicState):
            return
        updated = self._with_measured_bpm(state)
        if updated is state:
            return
        logger.debug("midi clock tempo %.2f bpm (was %s)", updated.bpm, state.bpm)
        self.hub.publish(updated)

    def close(self) -> None:
        """入力ポートを閉じる（冪等）。"""
        port, self.inport = self.inport, None
        if port is not None:
            port.close()


__all__ = ["InvalidPortError", "MidiClockTempo", "find_input_port", "show_available_ports"]
