"""
Double thresholding with hysteresis linking over the peak set.
"""

from __future__ import annotations

from typing import List, Set

import numpy as np

from common.geometry import Point, in_bounds, neighborhood
from cpu.peaks import PeakSet

LOW_RATIO = 0.35

ACCEPTED = 255
REJECTED = 0


def low_threshold_for(high_threshold: float) -> float:
    return LOW_RATIO * high_threshold


class HysteresisLinker:
    """
    Resolve every peak to accepted (255) or rejected (0).

    Peaks with magnitude >= hi are accepted and peaks below lo = 0.35 * hi are
    rejected. A peak in between is accepted when it touches an accepted pixel;
    acceptance then spreads depth-first through 8-connected peaks with
    magnitude >= lo. The visited set lives for the whole run, so no pixel is
    expanded twice.
    """

    def __init__(self, magnitude: np.ndarray, peaks: PeakSet, high_threshold: float):
        if magnitude.ndim != 2:
            raise ValueError("HysteresisLinker expects 2D magnitude grid")
        if not high_threshold > 0:
            raise ValueError(f"high_threshold must be positive, got {high_threshold}")

        self.magnitude = magnitude
        self.peaks = peaks
        self.high = float(high_threshold)
        self.low = low_threshold_for(self.high)
        self.shape = magnitude.shape

        self.final = np.zeros(self.shape, dtype=np.uint8)
        self.visited: Set[Point] = set()

    def _mag(self, point: Point) -> float:
        return float(self.magnitude[point.row, point.col])

    def _touches_accepted(self, point: Point) -> bool:
        for n in neighborhood(point, self.shape):
            if self.final[n.row, n.col] == ACCEPTED:
                return True
        return False

    def link(self, row: int, col: int, flag: bool = False) -> bool:
        """
        Try to accept (row, col) and spread acceptance through its chain.

        Args:
            row, col: Entry pixel.
            flag: True when the caller already knows the entry is connected to an
                accepted pixel; False to require an accepted 3x3 neighbor first.

        Returns:
            True if the entry pixel was accepted by this call.
        """
        if not in_bounds(row, col, self.shape):
            return False

        start = Point(row, col)
        if self._mag(start) < self.low or start in self.visited:
            return False

        if not flag and not self._touches_accepted(start):
            # Left unvisited: a later chain may still reach it
            return False

        # Iterative depth-first walk over peaks with magnitude >= lo
        self.visited.add(start)
        stack: List[Point] = [start]
        while stack:
            point = stack.pop()
            self.final[point.row, point.col] = ACCEPTED
            for n in neighborhood(point, self.shape):
                if n in self.visited or n not in self.peaks:
                    continue
                if self._mag(n) < self.low:
                    continue
                self.visited.add(n)
                stack.append(n)

        return True

    def run(self) -> np.ndarray:
        """
        Classify every peak in scan order and return the final 0/255 grid.
        """
        pending: List[Point] = []
        for point in self.peaks:
            value = self._mag(point)
            if value >= self.high:
                self.final[point.row, point.col] = ACCEPTED
            elif value < self.low:
                self.final[point.row, point.col] = REJECTED
            else:
                pending.append(point)

        for point in pending:
            self.link(point.row, point.col)

        return self.final


def hysteresis_threshold(magnitude: np.ndarray, peaks: PeakSet, high_threshold: float) -> np.ndarray:
    """
    Run a fresh HysteresisLinker and return the uint8 edge grid (0 or 255).
    """
    return HysteresisLinker(magnitude, peaks, high_threshold).run()
