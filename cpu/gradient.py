"""
CPU gradient field: windowed convolution with the derivative masks, then
gradient magnitude rescaled to the 0-255 display range.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

MAGNITUDE_SCALE = 255.0


@dataclass
class GradientField:
    gx: np.ndarray
    gy: np.ndarray
    magnitude: np.ndarray  # rescaled so the global max is 255

    @property
    def shape(self) -> tuple[int, int]:
        return self.magnitude.shape


def _check_inputs(pic: np.ndarray, maskx: np.ndarray, masky: np.ndarray) -> None:
    if pic.ndim != 2:
        raise ValueError("cpu_gradient_field expects 2D grayscale image")
    if maskx.shape != masky.shape:
        raise ValueError(f"Mask shapes differ: {maskx.shape} vs {masky.shape}")
    if maskx.ndim != 2 or maskx.shape[0] != maskx.shape[1] or maskx.shape[0] % 2 == 0:
        raise ValueError(f"Masks must be square with odd dimension, got {maskx.shape}")


def cpu_convolve(
    pic: np.ndarray,
    maskx: np.ndarray,
    masky: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Slide both masks over pic (vectorized, one shifted slice per mask cell).

    gx[i, j] = sum over (p, q) of pic[i + p, j + q] * maskx[p + cent, q + cent]
    and likewise for gy. Window cells outside the image contribute zero.
    """
    _check_inputs(pic, maskx, masky)

    pic_f64 = pic.astype(np.float64)
    h, w = pic_f64.shape
    dim = maskx.shape[0]
    cent = dim // 2

    # Zero padding: out-of-bounds window cells contribute nothing
    padded = np.pad(pic_f64, ((cent, cent), (cent, cent)), mode="constant", constant_values=0)

    gx = np.zeros((h, w), dtype=np.float64)
    gy = np.zeros((h, w), dtype=np.float64)
    for r in range(dim):
        for c in range(dim):
            wx = maskx[r, c]
            wy = masky[r, c]
            if wx == 0 and wy == 0:
                continue
            window = padded[r:r + h, c:c + w]
            gx += window * wx
            gy += window * wy

    return gx, gy


def rescale_magnitude(magnitude: np.ndarray) -> np.ndarray:
    """
    Linearly map magnitude so its global maximum becomes 255.

    An all-zero grid is returned unchanged.
    """
    max_val = float(np.max(magnitude)) if magnitude.size else 0.0
    if max_val <= 0:
        return magnitude
    return magnitude / max_val * MAGNITUDE_SCALE


def cpu_gradient_field(
    pic: np.ndarray,
    maskx: np.ndarray,
    masky: np.ndarray,
) -> GradientField:
    """
    Compute gx, gy and the rescaled gradient magnitude on CPU.

    Args:
        pic: 2D input grid (uint8 or float)
        maskx: x-derivative mask from build_derivative_kernels
        masky: y-derivative mask from build_derivative_kernels

    Returns:
        GradientField with float64 grids of the same shape as pic
    """
    gx, gy = cpu_convolve(pic, maskx, masky)

    magnitude = np.sqrt(gx * gx + gy * gy)
    # Global max must be known before the rescale pass
    magnitude = rescale_magnitude(magnitude)

    return GradientField(gx=gx, gy=gy, magnitude=magnitude)
