"""
どこで: `engine.render` の低レベルメッシュ層。
何を: 線分列を太さを持つ三角形列へ展開し（CPU/numpy）、VBO/VAO の確保・更新・解放を担当する LineMesh。
なぜ: コアプロファイルの OpenGL では太線（glLineWidth > 1）が保証されないため、線幅をジオメトリで表現し、
      GPU 転送の詳細を描画面実装から切り離すため。
"""

from __future__ import annotations

from typing import Any

import moderngl
import numpy as np


def segments_to_triangles(starts: np.ndarray, ends: np.ndarray, width: float) -> np.ndarray:
    """線分 `starts[k] → ends[k]` を幅 `width` の矩形（三角形 2 枚）に展開する。

    返値は `(6*M', 2) float32`。長さ 0 の線分（M' に含まれない）は描かない。
    """
    p0 = np.asarray(starts, dtype=np.float64).reshape(-1, 2)
    p1 = np.asarray(ends, dtype=np.float64).reshape(-1, 2)
    if p0.shape != p1.shape:
        raise ValueError(f"starts/ends shape mismatch: {p0.shape} vs {p1.shape}")

    direction = p1 - p0
    length = np.hypot(direction[:, 0], direction[:, 1])
    keep = np.isfinite(length) & (length > 0.0)
    if not np.any(keep):
        return np.empty((0, 2), dtype=np.float32)
    p0, p1, direction, length = p0[keep], p1[keep], direction[keep], length[keep]

    half = float(width) / 2.0
    normal = np.stack([-direction[:, 1], direction[:, 0]], axis=1) / length[:, None] * half

    a = p0 + normal
    b = p0 - normal
    c = p1 + normal
    d = p1 - normal
    # (a, b, c) と (c, b, d) の 2 枚
    tris = np.stack([a, b, c, c, b, d], axis=1)
    return tris.reshape(-1, 2).astype(np.float32)


class LineMesh:
    """
    GPU に太線の三角形データを送り込む作業を管理
    """

    def __init__(
        self,
        ctx: Any,
        program: Any,
        # 初期 GPU メモリ確保量（既定: 256KB）。必要に応じて自動拡張。
        initial_reserve: int = 256 * 1024,
    ):
        """
        ctx: moderngl コンテキスト
        program: `in_vert`（vec2）を受け取るシェーダープログラム
        """
        self.ctx = ctx
        self.program = program
        self.initial_reserve = initial_reserve

        self.vbo = ctx.buffer(reserve=initial_reserve, dynamic=True)
        self.vao = ctx.simple_vertex_array(program, self.vbo, "in_vert")
        self.vertex_count: int = 0

    # ---------- バッファ操作 ----------
    def _ensure_capacity(self, vbo_size: int) -> None:
        """データが大きくなったら GPU のバッファを再確保し、VAO を張り直す"""
        if vbo_size <= self.vbo.size:
            return
        self.vao.release()
        self.vbo.release()
        self.vbo = self.ctx.buffer(reserve=max(vbo_size, self.vbo.size * 2), dynamic=True)
        self.vao = self.ctx.simple_vertex_array(self.program, self.vbo, "in_vert")

    def upload(self, vertices: np.ndarray) -> None:
        """三角形の頂点列 `(K,2) float32` を GPU へ送り込む"""
        data = np.ascontiguousarray(vertices, dtype=np.float32)
        self._ensure_capacity(data.nbytes)
        self.vbo.orphan()
        self.vbo.write(data.tobytes())
        self.vertex_count = int(data.shape[0])

    def render(self) -> None:
        if self.vertex_count > 0:
            self.vao.render(moderngl.TRIANGLES, vertices=self.vertex_count)

    def release(self) -> None:
        """GPU のメモリを解放する（終了時に使う）"""
        self.vao.release()
        self.vbo.release()


__all__ = ["LineMesh", "segments_to_triangles"]
