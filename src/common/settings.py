"""
どこで: `common.settings`
何を: プロジェクトの環境変数（`TSV_*`）を型付きで一元管理し、起動時に読み込む。
なぜ: `os.getenv` の散在を解消し、既定値/型の一貫性とテスト容易性を高めるため。
"""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_bool, env_int, env_str


@dataclass
class _Settings:
    # Logging
    LOG_LEVEL: str = "INFO"
    DEBUG_FRAMES: bool = False

    # 軸の再割当て用乱数シード（None で非決定的）
    RANDOM_SEED: int | None = None

    # MIDI クロック入力ポート（部分一致）。None なら設定ファイルに委ねる
    MIDI_CLOCK_PORT: str | None = None


_settings = _Settings()


def reload_from_env() -> None:
    """環境変数から設定を再読込。

    - bool は `env_bool`、int は `env_int`、文字列は `env_str` を使用。
    - 不正値は既定値へフォールバックする。
    """
    _settings.LOG_LEVEL = (env_str("TSV_LOG_LEVEL", "INFO") or "INFO").upper()
    _settings.DEBUG_FRAMES = env_bool("TSV_DEBUG_FRAMES", False)
    _settings.RANDOM_SEED = env_int("TSV_RANDOM_SEED", None)
    _settings.MIDI_CLOCK_PORT = env_str("TSV_MIDI_CLOCK_PORT", None)


def get() -> _Settings:
    """現在の設定スナップショットを返す。"""
    return _settings


# 初期ロード
reload_from_env()


__all__ = ["get", "reload_from_env", "_Settings"]
