"""
どこで: `common` の型定義。
何を: RGBA/Millis などの軽量エイリアス（組込みジェネリックで記述）。
なぜ: 依存の少ない場所に配置して循環と分散定義を避けるため。
"""

RGBA = tuple[float, float, float, float]

# performance.now() 相当のミリ秒タイムスタンプ
Millis = float


__all__ = ["RGBA", "Millis"]
