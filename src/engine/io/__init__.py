"""
どこで: `engine.io` サブパッケージ（音楽状態/MIDI）。
何を: 音楽状態スナップショット `MusicState` と購読ハブ、MIDI クロックからのテンポ推定を提供。
なぜ: 外部の音楽状態ソースや入力デバイス依存を隔離し、アニメーション層へ統一 API で届けるため。
"""
