"""
どこで: `common` パッケージ。
何を: ロギング/環境変数/設定/型エイリアスなど、エンジン全層で使う軽量ユーティリティ。
なぜ: 依存の向きを単純化し、engine/api の双方から再利用するため。
"""

from .logging import setup_default_logging

__all__ = [
    "setup_default_logging",
]
