"""
どこで: `engine.core` サブパッケージ。
何を: 超立方体ジオメトリ・極座標カーネル・フレーム駆動（Tickable/FrameClock/FrameLoop）・
      購読ハンドル・描画ウィンドウを提供。
なぜ: 計算とフレーム駆動の基盤を構成し、上位層（animation/render/api）から再利用可能にするため。
"""
