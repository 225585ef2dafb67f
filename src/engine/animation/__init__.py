"""
どこで: `engine.animation` サブパッケージ。
何を: 音楽状態から回転設定を導出する Rotation State と、フェード/視野角/描画を毎フレーム進める
      Animation Driver、およびその設定 `VisualiserSettings` を提供。
なぜ: 時間とスケジューリングの責務をこの層に閉じ込め、幾何（core）と描画（render）を純粋に保つため。
"""
