from __future__ import annotations

import random

import pytest

pytest.importorskip("mido")

from engine.animation.driver import AnimationDriver, AnimationState
from engine.animation.settings import VisualiserSettings
from engine.core.frame_clock import FrameClock, FrameLoop
from engine.io.midi_clock import MidiClockTempo
from engine.io.music_state import MusicState, MusicStateHub
from tests._utils.dummies import FakeClock, RecordingSurface, midi_message


class CountingRandom(random.Random):
    def __init__(self, seed: int) -> None:
        super().__init__(seed)
        self.choices = 0

    def choice(self, seq):
        self.choices += 1
        return super().choice(seq)


@pytest.mark.integration
def test_midi_tempo_flows_through_hub_into_driver() -> None:
    source = MusicStateHub()
    hub = MusicStateHub()
    tempo = MidiClockTempo(hub, window=24)
    relay = source.subscribe(tempo.relay)

    clock_ms = FakeClock(0.0)
    surface = RecordingSurface(320, 240)
    driver = AnimationDriver(
        surface, settings=VisualiserSettings(), clock=clock_ms, rng=random.Random(1)
    )
    driver.subscribe(hub)

    scheduled: list = []
    loop = FrameLoop(
        FrameClock([tempo, driver]).tick,
        schedule=scheduled.append,
        unschedule=scheduled.remove,
    )
    loop.start()

    source.publish(MusicState(bpm=100, root_identity="a", loop_ticks={"bass": 15360, "kick": 7680}))
    step = 0.5 / 24
    for k in range(25):
        tempo.feed(midi_message("clock"), timestamp=k * step)

    for _ in range(3):
        clock_ms.advance(16.0)
        for fn in list(scheduled):
            fn(0.016)

    assert driver.config.bpm == pytest.approx(120.0)
    # bpm の上書きはルートを変えないので位相は保たれる
    assert driver.config.time_origin == 0.0
    assert driver.state is AnimationState.FADING_IN
    assert len(surface.strokes) == 3

    # 新しいルートで位相リセット → フェードやり直し
    clock_ms.advance(5000.0)
    source.publish(MusicState(bpm=100, root_identity="b", loop_ticks={"bass": 15360}))
    for fn in list(scheduled):
        fn(0.016)
    assert driver.config.time_origin == 5048.0
    assert driver.state is AnimationState.FADING_IN

    source.clear()
    for fn in list(scheduled):
        fn(0.016)
    assert driver.state is AnimationState.IDLE

    loop.cancel()
    driver.close()
    relay.close()
    assert scheduled == []
    assert hub.subscriber_count == 0


@pytest.mark.integration
def test_each_upstream_update_is_derived_once_with_measured_tempo() -> None:
    source = MusicStateHub()
    hub = MusicStateHub()
    tempo = MidiClockTempo(hub, window=24)
    relay = source.subscribe(tempo.relay)

    clock_ms = FakeClock(0.0)
    rng = CountingRandom(3)
    driver = AnimationDriver(RecordingSurface(320, 240), clock=clock_ms, rng=rng)
    driver.subscribe(hub)
    frame_clock = FrameClock([tempo, driver])

    step = 0.5 / 24
    for k in range(25):
        tempo.feed(midi_message("clock"), timestamp=k * step)

    bpms: list = []
    for n, root in enumerate(["a", "b", "c"], start=1):
        source.publish(MusicState(bpm=100, root_identity=root, loop_ticks={"pad": 61440}))
        assert rng.choices == n
        for _ in range(3):
            clock_ms.advance(16.0)
            frame_clock.tick(0.016)
            bpms.append(driver.config.bpm)
        # フレームを進めても軸の引き直しは起きない
        assert rng.choices == n

    assert bpms == pytest.approx([120.0] * 9)
    assert hub.latest.root_identity == "c"

    relay.close()
    driver.close()
