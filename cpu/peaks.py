"""
Non-maximum suppression along the quantized gradient direction.
"""

from __future__ import annotations

import math
from typing import FrozenSet, Iterable, Iterator, List, Tuple

import numpy as np

from common.geometry import Point

# Substituted for gx == 0 before computing the slope gy / gx
SLOPE_EPSILON = 0.0001

TAN_22_5 = math.tan(math.radians(22.5))
TAN_67_5 = math.tan(math.radians(67.5))

PEAK_VALUE = 255


class PeakSet:
    """
    Peak pixels in scan order, with O(1) membership.

    Iteration yields Points in insertion order; `in` accepts a Point or any
    (row, col) tuple.
    """

    def __init__(self, points: Iterable[Point] = ()):
        self.points: List[Point] = [Point(int(r), int(c)) for r, c in points]
        self.members: FrozenSet[Point] = frozenset(self.points)
        if len(self.members) != len(self.points):
            raise ValueError("PeakSet points must be unique")

    def __contains__(self, point: object) -> bool:
        return point in self.members

    def __iter__(self) -> Iterator[Point]:
        return iter(self.points)

    def __len__(self) -> int:
        return len(self.points)

    def __repr__(self) -> str:
        return f"PeakSet({len(self.points)} points)"


def _sector_masks(slope: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Split slopes into the four comparison axes.

    Returns:
        (horizontal, diagonal, anti_diagonal, vertical) boolean masks.
        diagonal compares (i-1, j-1)/(i+1, j+1); anti_diagonal compares
        (i+1, j-1)/(i-1, j+1).
    """
    horizontal = (slope > -TAN_22_5) & (slope <= TAN_22_5)
    diagonal = (slope > TAN_22_5) & (slope <= TAN_67_5)
    anti_diagonal = (slope > -TAN_67_5) & (slope <= -TAN_22_5)
    vertical = ~(horizontal | diagonal | anti_diagonal)
    return horizontal, diagonal, anti_diagonal, vertical


def detect_peaks(magnitude: np.ndarray, gx: np.ndarray, gy: np.ndarray) -> PeakSet:
    """
    Keep interior pixels whose magnitude strictly exceeds both neighbors
    along their gradient sector axis.

    Args:
        magnitude: 2D gradient magnitude grid
        gx: 2D x-gradient grid (not modified)
        gy: 2D y-gradient grid

    Returns:
        PeakSet in row-major scan order. Border rows/columns are never peaks.
    """
    if magnitude.ndim != 2:
        raise ValueError("detect_peaks expects 2D magnitude grid")
    if magnitude.shape != gx.shape or magnitude.shape != gy.shape:
        raise ValueError(
            f"Grid shapes differ: mag {magnitude.shape}, gx {gx.shape}, gy {gy.shape}"
        )

    h, w = magnitude.shape
    if h < 3 or w < 3:
        return PeakSet()

    mag = magnitude.astype(np.float64, copy=False)
    gx_in = gx[1:-1, 1:-1].astype(np.float64)
    gy_in = gy[1:-1, 1:-1].astype(np.float64)

    gx_in[gx_in == 0] = SLOPE_EPSILON
    with np.errstate(over="ignore"):
        slope = gy_in / gx_in

    center = mag[1:-1, 1:-1]
    left, right = mag[1:-1, :-2], mag[1:-1, 2:]
    up, down = mag[:-2, 1:-1], mag[2:, 1:-1]
    up_left, down_right = mag[:-2, :-2], mag[2:, 2:]
    down_left, up_right = mag[2:, :-2], mag[:-2, 2:]

    horizontal, diagonal, anti_diagonal, vertical = _sector_masks(slope)

    keep = (
        (horizontal & (center > left) & (center > right))
        | (diagonal & (center > up_left) & (center > down_right))
        | (anti_diagonal & (center > down_left) & (center > up_right))
        | (vertical & (center > up) & (center > down))
    )

    # np.nonzero walks the mask in row-major order
    rows, cols = np.nonzero(keep)
    return PeakSet(Point(int(r) + 1, int(c) + 1) for r, c in zip(rows, cols))


def peak_indicator(peaks: Iterable[Point], shape: Tuple[int, int]) -> np.ndarray:
    """
    Sparse peak grid: 255 at every peak coordinate, 0 elsewhere.
    """
    grid = np.zeros(shape, dtype=np.uint8)
    for row, col in peaks:
        grid[row, col] = PEAK_VALUE
    return grid
