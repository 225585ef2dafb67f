from __future__ import annotations

import pytest

from engine.io.music_state import (
    MalformedMusicStateError,
    MusicState,
    MusicStateHub,
    coerce_music_state,
)


def test_loop_and_has_notes(music_state) -> None:
    assert music_state.loop("bass") == 15360
    assert music_state.loop("unknown") == 0
    assert music_state.has_notes("kick")
    assert not music_state.has_notes("open_hat")


def test_note_counts_take_precedence_over_loop_length() -> None:
    s = MusicState(
        bpm=120,
        root_identity=1,
        loop_ticks={"open_hat": 7680, "ride": 3840},
        note_counts={"open_hat": 0},
    )
    assert not s.has_notes("open_hat")
    # note_counts に無いトラックはループ長で判定
    assert s.has_notes("ride")


def test_state_is_immutable(music_state) -> None:
    with pytest.raises(TypeError):
        music_state.loop_ticks["bass"] = 1  # type: ignore[index]
    changed = music_state.with_bpm(90)
    assert changed.bpm == 90.0
    assert music_state.bpm == 120.0
    assert changed.root_identity == music_state.root_identity


def test_from_mapping_round_trip_fields() -> None:
    s = MusicState.from_mapping(
        {
            "bpm": "128",
            "root_identity": "song-a",
            "loop_ticks": {"kick": 7680},
            "note_counts": {"kick": 4},
        }
    )
    assert s is not None
    assert s.bpm == 128.0
    assert s.root_identity == "song-a"
    assert dict(s.loop_ticks) == {"kick": 7680}
    assert dict(s.note_counts or {}) == {"kick": 4}


@pytest.mark.parametrize("data", [None, {}])
def test_empty_mapping_is_idle(data) -> None:
    assert MusicState.from_mapping(data) is None


@pytest.mark.parametrize(
    "data",
    [
        ["not", "a", "mapping"],
        {"bpm": True, "root_identity": 1},
        {"bpm": "fast", "root_identity": 1},
        {"bpm": 0, "root_identity": 1},
        {"bpm": float("inf"), "root_identity": 1},
        {"bpm": 120, "root_identity": [1, 2]},
        {"bpm": 120, "root_identity": 1, "loop_ticks": [1, 2]},
        {"bpm": 120, "root_identity": 1, "loop_ticks": {"kick": -1}},
        {"bpm": 120, "root_identity": 1, "loop_ticks": {"kick": "long"}},
        {"bpm": 120, "root_identity": 1, "note_counts": {"kick": False}},
    ],
)
def test_malformed_mappings_raise(data) -> None:
    with pytest.raises(MalformedMusicStateError):
        MusicState.from_mapping(data)


@pytest.mark.parametrize("bpm", [0, -1, -120.5, float("nan"), float("inf"), True, "fast"])
def test_constructor_rejects_invalid_bpm(bpm) -> None:
    with pytest.raises(MalformedMusicStateError):
        MusicState(bpm=bpm, root_identity=1, loop_ticks={"bass": 15360})


def test_constructor_normalises_bpm_to_float() -> None:
    assert MusicState(bpm=None, root_identity=1).bpm is None
    s = MusicState(bpm=128, root_identity=1)
    assert isinstance(s.bpm, float) and s.bpm == 128.0
    with pytest.raises(MalformedMusicStateError):
        s.with_bpm(0)


def test_malformed_error_is_value_error() -> None:
    assert issubclass(MalformedMusicStateError, ValueError)


def test_coerce_passes_through(music_state) -> None:
    assert coerce_music_state(music_state) is music_state
    assert coerce_music_state(None) is None
    assert coerce_music_state({"bpm": 100, "root_identity": 0}).bpm == 100.0


def test_hub_replays_latest_to_new_subscriber(music_state) -> None:
    hub = MusicStateHub()
    seen: list = []
    hub.subscribe(seen.append)
    assert seen == []  # 未 publish なら再送しない

    hub.publish(music_state)
    late: list = []
    hub.subscribe(late.append)
    assert seen == [music_state]
    assert late == [music_state]


def test_hub_replays_idle_after_clear(music_state) -> None:
    hub = MusicStateHub()
    hub.publish(music_state)
    hub.clear()
    seen: list = []
    hub.subscribe(seen.append)
    assert seen == [None]
    assert hub.latest is None


def test_hub_unsubscribe_is_idempotent(music_state) -> None:
    hub = MusicStateHub()
    seen: list = []
    sub = hub.subscribe(seen.append)
    sub.close()
    sub.close()
    hub.publish(music_state)
    assert seen == []
    assert hub.subscriber_count == 0


def test_callback_may_publish_reentrantly(music_state) -> None:
    hub = MusicStateHub()
    seen: list = []

    def _bump(state) -> None:
        seen.append(state)
        if state is not None and state.bpm == 120.0:
            hub.publish(state.with_bpm(121))

    hub.subscribe(_bump)
    hub.publish(music_state)
    assert [s.bpm for s in seen] == [120.0, 121.0]
    assert hub.latest.bpm == 121.0
