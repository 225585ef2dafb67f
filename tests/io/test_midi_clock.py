from __future__ import annotations

import pytest

pytest.importorskip("mido")

from engine.io import midi_clock as mc
from engine.io.midi_clock import InvalidPortError, MidiClockTempo, find_input_port
from engine.io.music_state import MusicState, MusicStateHub
from tests._utils.dummies import make_fake_mido, midi_message


def _feed_clock(clock: MidiClockTempo, bpm: float, pulses: int, start: float = 0.0) -> float:
    step = 60.0 / bpm / MidiClockTempo.PULSES_PER_QUARTER
    t = start
    for _ in range(pulses):
        clock.feed(midi_message("clock"), timestamp=t)
        t += step
    return t


def test_estimate_from_one_beat_of_pulses() -> None:
    clock = MidiClockTempo(MusicStateHub())
    assert clock.estimate_bpm() is None
    _feed_clock(clock, 120.0, 25)
    assert clock.estimate_bpm() == pytest.approx(120.0)


def test_window_keeps_only_recent_pulses() -> None:
    clock = MidiClockTempo(MusicStateHub(), window=24)
    t = _feed_clock(clock, 90.0, 100)
    _feed_clock(clock, 140.0, 25, start=t)
    assert clock.estimate_bpm() == pytest.approx(140.0)


def test_stop_clears_and_ignores_pulses_until_start() -> None:
    clock = MidiClockTempo(MusicStateHub())
    _feed_clock(clock, 120.0, 10)
    clock.feed(midi_message("stop"), timestamp=1.0)
    _feed_clock(clock, 120.0, 10, start=2.0)
    assert clock.estimate_bpm() is None

    clock.feed(midi_message("start"), timestamp=3.0)
    _feed_clock(clock, 100.0, 10, start=4.0)
    assert clock.estimate_bpm() == pytest.approx(100.0)


def test_window_must_be_positive() -> None:
    with pytest.raises(ValueError):
        MidiClockTempo(MusicStateHub(), window=0)


def test_tick_republishes_latest_state_with_estimated_bpm() -> None:
    hub = MusicStateHub()
    seen: list = []
    hub.subscribe(seen.append)
    clock = MidiClockTempo(hub, min_change_bpm=0.5)

    _feed_clock(clock, 120.0, 25)
    clock.tick(0.016)
    assert seen == []  # 状態が無ければ何もしない

    hub.publish(MusicState(bpm=100, root_identity=3, loop_ticks={"kick": 7680}))
    clock.tick(0.016)
    assert seen[-1].bpm == pytest.approx(120.0)
    assert seen[-1].root_identity == 3
    assert seen[-1].loop("kick") == 7680

    n = len(seen)
    clock.tick(0.016)
    assert len(seen) == n  # 変化が閾値未満なら再 publish しない


def test_tick_fills_missing_bpm() -> None:
    hub = MusicStateHub()
    hub.publish(MusicState(bpm=None, root_identity=1))
    clock = MidiClockTempo(hub)
    _feed_clock(clock, 96.0, 25)
    clock.tick(0.016)
    assert hub.latest.bpm == pytest.approx(96.0)


def test_open_resolves_partial_port_name(monkeypatch) -> None:
    fake = make_fake_mido(["Elektron Digitakt", "IAC Driver Bus 1"])
    monkeypatch.setattr(mc, "mido", fake)
    assert find_input_port("IAC") == "IAC Driver Bus 1"
    assert find_input_port("nope") is None

    clock = MidiClockTempo.open("IAC", MusicStateHub(), window=48)
    assert clock.port_name == "IAC Driver Bus 1"
    assert clock.window == 48
    port = fake.opened[0]
    assert port.callback == clock.feed

    clock.close()
    clock.close()
    assert port.close_calls == 1


def test_open_unknown_port_raises(monkeypatch, caplog) -> None:
    monkeypatch.setattr(mc, "mido", make_fake_mido(["Digitakt"]))
    with pytest.raises(InvalidPortError) as ex:
        MidiClockTempo.open("TR-8", MusicStateHub())
    assert "Digitakt" in str(ex.value)
    assert "Invalid port name" in caplog.text


def test_relay_applies_measured_bpm_before_publishing() -> None:
    hub = MusicStateHub()
    seen: list = []
    hub.subscribe(seen.append)
    clock = MidiClockTempo(hub, min_change_bpm=0.5)

    clock.relay(MusicState(bpm=100, root_identity=1))
    assert [s.bpm for s in seen] == [100.0]  # 計測前は上流の bpm のまま

    _feed_clock(clock, 120.0, 25)
    clock.relay(MusicState(bpm=100, root_identity=2, loop_ticks={"kick": 7680}))
    assert len(seen) == 2
    assert seen[-1].bpm == pytest.approx(120.0)
    assert seen[-1].root_identity == 2

    clock.tick(0.016)
    assert len(seen) == 2  # 中継済みの状態は再 publish しない

    clock.relay(MusicState(bpm=120.2, root_identity=3))
    assert seen[-1].bpm == 120.2  # 閾値未満のずれは上流の値を尊重

    clock.relay(None)
    assert seen[-1] is None
    assert len(seen) == 4
