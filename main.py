from __future__ import annotations

import itertools

from api import MusicState, MusicStateHub, run
from util.utils import config_section, load_config

# 設定に demo_state が無い場合の既定（1 拍 = 3840 tick）
FALLBACK_STATE = {
    "bpm": 124,
    "root_identity": 0,
    "loop_ticks": {"bass": 15360, "pad": 30720, "kick": 7680, "clap": 15360, "ride": 3840},
}


def main() -> None:
    """デモ: 設定の `demo_state` を publish して可視化する。

    キー操作:
        R  ルート識別子を変えて位相をリセット（フェードインからやり直し）
        N  同じ状態を再送（パッドの軸だけ抽選し直す）
        I  Idle と再生を切り替え
        ESC 終了
    """
    from pyglet.window import key

    state = MusicState.from_mapping(config_section(load_config(), "demo_state") or FALLBACK_STATE)
    hub = MusicStateHub()
    hub.publish(state)
    roots = itertools.count(1)

    def on_key(symbol: int, _modifiers: int) -> None:
        nonlocal state
        if state is None:
            return
        if symbol == key.R:
            state = MusicState(
                bpm=state.bpm,
                root_identity=("demo", next(roots)),
                loop_ticks=state.loop_ticks,
                note_counts=state.note_counts,
            )
            hub.publish(state)
        elif symbol == key.N:
            hub.publish(state)
        elif symbol == key.I:
            hub.publish(None if hub.latest is not None else state)

    run(hub, on_key_press=on_key)


if __name__ == "__main__":
    main()
