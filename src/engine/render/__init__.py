"""
どこで: `engine.render` サブパッケージ。
何を: 描画面の契約（DrawingSurface）、4D→2D の Projector、太線の三角形化と GPU 転送（LineMesh）、
      ModernGL による描画面実装（GLSurface）を提供。
なぜ: 計算（core/animation）と描画の責務を分離し、GPU リソース管理を局所化するため。
"""
