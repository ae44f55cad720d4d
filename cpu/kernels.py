"""
Derivative-of-Gaussian convolution masks.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np


def kernel_radius(sigma: float) -> int:
    """
    Half-width of the mask window for a given sigma (mask dimension is 2 * radius + 1).
    """
    if not sigma > 0:
        raise ValueError(f"sigma must be positive, got {sigma}")
    return int(3 * sigma)


def build_derivative_kernels(sigma: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build the x- and y-derivative masks for Gaussian smoothing parameter sigma.

    For integer sigma the masks are (6 * sigma + 1) square, centered at
    (cent, cent) with cent = 3 * sigma. For offsets (p, q) in [-cent, cent]:

        maskx[p + cent, q + cent] = q * exp(-(p^2 + q^2) / (2 * sigma^2))
        masky[p + cent, q + cent] = p * exp(-(p^2 + q^2) / (2 * sigma^2))

    No normalization is applied.

    Args:
        sigma: Smoothing parameter, must be > 0.

    Returns:
        (maskx, masky) float64 arrays, read-only.
    """
    cent = kernel_radius(sigma)
    offsets = np.arange(-cent, cent + 1, dtype=np.float64)
    p, q = np.meshgrid(offsets, offsets, indexing="ij")

    gauss = np.exp(-(p * p + q * q) / (2.0 * sigma * sigma))
    maskx = q * gauss
    masky = p * gauss

    maskx.setflags(write=False)
    masky.setflags(write=False)
    return maskx, masky
