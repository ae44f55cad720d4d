"""
CPU Canny edge detection: derivative-of-Gaussian gradients, non-maximum
suppression and hysteresis thresholding.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict

import numpy as np

from cpu.gradient import GradientField, cpu_gradient_field
from cpu.hysteresis import ACCEPTED, HysteresisLinker
from cpu.kernels import build_derivative_kernels
from cpu.peaks import PeakSet, detect_peaks, peak_indicator


@dataclass
class EdgeMap:
    magnitude: np.ndarray  # float64, 0-255
    gx: np.ndarray
    gy: np.ndarray
    peaks: PeakSet
    edges: np.ndarray  # uint8, 0 or 255
    timings: Dict[str, float] = field(default_factory=dict)
    backend: str = "CPU"

    @property
    def shape(self) -> tuple[int, int]:
        return self.edges.shape

    @property
    def peak_grid(self) -> np.ndarray:
        return peak_indicator(self.peaks, self.shape)

    @property
    def edge_count(self) -> int:
        return int(np.count_nonzero(self.edges == ACCEPTED))


def _now_ms() -> float:
    return time.perf_counter() * 1000.0


def validate_parameters(sigma: float, high_threshold: float) -> None:
    if not sigma > 0:
        raise ValueError(f"sigma must be positive, got {sigma}")
    if not high_threshold > 0:
        raise ValueError(f"high_threshold must be positive, got {high_threshold}")


def canny_from_gradient(
    grad: GradientField,
    high_threshold: float,
    timings: Dict[str, float] | None = None,
) -> EdgeMap:
    """
    Run peak detection and hysteresis on an already computed gradient field.
    """
    timings = dict(timings or {})

    t0 = _now_ms()
    peaks = detect_peaks(grad.magnitude, grad.gx, grad.gy)
    t1 = _now_ms()
    edges = HysteresisLinker(grad.magnitude, peaks, high_threshold).run()
    t2 = _now_ms()

    timings["t_peaks_ms"] = t1 - t0
    timings["t_hysteresis_ms"] = t2 - t1

    return EdgeMap(
        magnitude=grad.magnitude,
        gx=grad.gx,
        gy=grad.gy,
        peaks=peaks,
        edges=edges,
        timings=timings,
    )


def cpu_canny(gray: np.ndarray, sigma: float = 1.0, high_threshold: float = 50.0) -> EdgeMap:
    """
    CPU Canny edge detection.

    Args:
        gray: 2D grayscale grid (uint8 0-255 or float)
        sigma: Gaussian smoothing parameter (> 0); masks are 6 * sigma + 1 wide
        high_threshold: Upper hysteresis threshold on the 0-255 magnitude scale;
            the lower threshold is 0.35 * high_threshold

    Returns:
        EdgeMap with the magnitude grid, peak set and 0/255 edge grid
    """
    validate_parameters(sigma, high_threshold)
    if gray.ndim != 2:
        raise ValueError("cpu_canny expects 2D grayscale image")

    t0 = _now_ms()
    maskx, masky = build_derivative_kernels(sigma)
    grad = cpu_gradient_field(gray, maskx, masky)
    t1 = _now_ms()

    return canny_from_gradient(grad, high_threshold, {"t_gradient_ms": t1 - t0})
