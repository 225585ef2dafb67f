"""
どこで: `common.logging`。
何を: ロギングの最小構成を 1 度だけ適用するヘルパ（レベルは `TSV_LOG_LEVEL` から解決）。
なぜ: 各モジュールは `logging.getLogger(__name__)` だけを使い、ハンドラ構成はランナーに任せるため。

方針:
- ルートロガーにハンドラが無ければ `basicConfig` を適用する。
- 既にハンドラがある（ホスト側が構成済み）場合はそれを尊重し、レベルが明示されたときだけ
  自パッケージのロガー（`api`/`engine`/`common`/`util`）のレベルを合わせる。
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
PACKAGE_LOGGERS: tuple[str, ...] = ("api", "engine", "common", "util")


def resolve_level(level: int | str | None) -> int:
    """レベル指定（名前/数値/None）を数値に変換する。未知の名前は INFO。"""
    if level is None:
        from .settings import get as _get_settings

        level = _get_settings().LOG_LEVEL
    if isinstance(level, str):
        value = logging.getLevelName(level.strip().upper())
        return value if isinstance(value, int) else logging.INFO
    return int(level)


def setup_default_logging(level: int | str | None = None) -> bool:
    """最小限のロギング設定を 1 度だけ適用する。

    Returns
    -------
    bool
        `basicConfig` を適用した場合 True（ホスト側が構成済みなら False）。
    """
    lvl = resolve_level(level)
    root = logging.getLogger()
    if root.handlers:
        if level is not None:
            for name in PACKAGE_LOGGERS:
                logging.getLogger(name).setLevel(lvl)
        return False
    logging.basicConfig(level=lvl, format=LOG_FORMAT)
    return True


__all__ = ["LOG_FORMAT", "PACKAGE_LOGGERS", "resolve_level", "setup_default_logging"]
