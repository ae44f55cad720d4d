"""
GPU gradient field implementation using CuPy/CUDA.
"""

from __future__ import annotations

import numpy as np

try:
    import cupy as cp
except Exception as exc:  # pragma: no cover
    cp = None
    _gpu_import_error = exc
else:
    _gpu_import_error = None


def gpu_available() -> bool:
    return cp is not None


def gpu_gradient_field(
    pic_gpu: cp.ndarray,
    maskx: np.ndarray,
    masky: np.ndarray,
) -> tuple[cp.ndarray, cp.ndarray, cp.ndarray]:
    """
    GPU derivative-of-Gaussian gradients and rescaled magnitude.

    Same math as the CPU path: zero contribution outside the image, and the
    magnitude is scaled so its global max is 255 (skipped when all zero).

    Args:
        pic_gpu: 2D uint8 or float CuPy array on device
        maskx: x-derivative mask (host array)
        masky: y-derivative mask (host array)

    Returns:
        (gx, gy, magnitude) float64 CuPy arrays on device
    """
    if cp is None:
        raise RuntimeError(f"CuPy not available for GPU gradient: {_gpu_import_error}")

    if pic_gpu.ndim != 2:
        raise ValueError("gpu_gradient_field expects 2D grayscale image")

    pic_f64 = pic_gpu.astype(cp.float64)
    h, w = pic_f64.shape
    dim = maskx.shape[0]
    cent = dim // 2

    padded = cp.pad(pic_f64, ((cent, cent), (cent, cent)), mode="constant", constant_values=0)

    # Vectorized: for each mask cell, add the weighted shifted slice
    gx = cp.zeros((h, w), dtype=cp.float64)
    gy = cp.zeros((h, w), dtype=cp.float64)
    for r in range(dim):
        for c in range(dim):
            wx = float(maskx[r, c])
            wy = float(masky[r, c])
            if wx == 0.0 and wy == 0.0:
                continue
            window = padded[r:r + h, c:c + w]
            gx += window * wx
            gy += window * wy

    magnitude = cp.sqrt(gx * gx + gy * gy)

    # Reduction finishes before the rescale pass
    max_val = float(cp.max(magnitude)) if magnitude.size else 0.0
    if max_val > 0:
        magnitude = magnitude / max_val * 255.0

    return gx, gy, magnitude
