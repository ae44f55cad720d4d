"""
Double thresholding and hysteresis linking.
"""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import random

import numpy as np
import pytest

from common.geometry import Point
from cpu.gradient import cpu_gradient_field
from cpu.hysteresis import LOW_RATIO, HysteresisLinker, hysteresis_threshold, low_threshold_for
from cpu.kernels import build_derivative_kernels
from cpu.peaks import PeakSet, detect_peaks
from helpers import magnitude_grid, noisy_square_image, peaks_at

HI = 50.0
MID = 30.0  # lo = 17.5 <= MID < HI
WEAK = 10.0


def test_low_threshold_is_derived():
    assert low_threshold_for(HI) == pytest.approx(17.5)
    linker = HysteresisLinker(np.zeros((3, 3)), PeakSet(), HI)
    assert linker.low == pytest.approx(LOW_RATIO * HI)


def test_strong_accepted_weak_rejected():
    mag = magnitude_grid((5, 5), {(1, 1): 200.0, (3, 3): WEAK})
    final = hysteresis_threshold(mag, peaks_at([(1, 1), (3, 3)]), HI)
    assert final[1, 1] == 255
    assert final[3, 3] == 0


def test_isolated_mid_peak_rejected():
    # Strong and mid peaks with no chain between them
    mag = magnitude_grid((7, 7), {(1, 1): 200.0, (5, 5): MID})
    final = hysteresis_threshold(mag, peaks_at([(1, 1), (5, 5)]), HI)
    assert final[1, 1] == 255
    assert final[5, 5] == 0


def test_chain_links_to_strong_pixel():
    cells = {(3, 1): 200.0, (3, 2): MID, (3, 3): MID, (2, 4): MID, (1, 5): MID}
    mag = magnitude_grid((7, 7), cells)
    final = hysteresis_threshold(mag, peaks_at(sorted(cells)), HI)
    for cell in cells:
        assert final[cell] == 255


def test_mid_pixel_before_strong_in_scan_order():
    # (1, 1) is scanned before the strong pixel it touches
    cells = {(1, 1): MID, (2, 2): 200.0}
    mag = magnitude_grid((4, 4), cells)
    final = hysteresis_threshold(mag, peaks_at([(1, 1), (2, 2)]), HI)
    assert final[1, 1] == 255


def test_chain_broken_by_weak_pixel():
    cells = {(2, 1): 200.0, (2, 2): WEAK, (2, 3): MID}
    mag = magnitude_grid((5, 5), cells)
    final = hysteresis_threshold(mag, peaks_at(sorted(cells)), HI)
    assert final[2, 1] == 255
    assert final[2, 2] == 0
    assert final[2, 3] == 0


def test_chain_broken_by_non_peak():
    # (2, 2) has enough magnitude but is not a peak
    mag = magnitude_grid((5, 5), {(2, 1): 200.0, (2, 2): MID, (2, 3): MID})
    final = hysteresis_threshold(mag, peaks_at([(2, 1), (2, 3)]), HI)
    assert final[2, 2] == 0
    assert final[2, 3] == 0


def test_link_returns_false_out_of_bounds_and_visited():
    mag = magnitude_grid((4, 4), {(1, 1): 200.0, (1, 2): MID})
    linker = HysteresisLinker(mag, peaks_at([(1, 1), (1, 2)]), HI)
    linker.final[1, 1] = 255
    assert linker.link(-1, 0) is False
    assert linker.link(4, 4) is False
    assert linker.link(1, 2) is True
    assert Point(1, 2) in linker.visited
    # Already visited
    assert linker.link(1, 2, flag=True) is False


def test_link_without_accepted_neighbor_leaves_pixel_unvisited():
    mag = magnitude_grid((5, 5), {(2, 2): MID})
    linker = HysteresisLinker(mag, peaks_at([(2, 2)]), HI)
    assert linker.link(2, 2) is False
    assert Point(2, 2) not in linker.visited
    assert linker.final[2, 2] == 0


def test_long_chain_does_not_recurse():
    width = 5000
    mag = np.zeros((3, width))
    mag[1, 1:-1] = MID
    mag[1, 1] = 200.0
    peaks = PeakSet((1, c) for c in range(1, width - 1))
    final = hysteresis_threshold(mag, peaks, HI)
    assert np.all(final[1, 1:-1] == 255)


def test_invariants_on_real_image():
    pic = noisy_square_image(48)
    field = cpu_gradient_field(pic, *build_derivative_kernels(1))
    peaks = detect_peaks(field.magnitude, field.gx, field.gy)
    hi = 60.0
    lo = low_threshold_for(hi)
    final = hysteresis_threshold(field.magnitude, peaks, hi)

    assert set(np.unique(final)) <= {0, 255}
    for r, c in peaks:
        if field.magnitude[r, c] >= hi:
            assert final[r, c] == 255
        if field.magnitude[r, c] < lo:
            assert final[r, c] == 0
    accepted = {Point(int(r), int(c)) for r, c in zip(*np.nonzero(final))}
    assert accepted <= peaks.members


def test_result_independent_of_iteration_order():
    pic = noisy_square_image(48, seed=11)
    field = cpu_gradient_field(pic, *build_derivative_kernels(1))
    peaks = detect_peaks(field.magnitude, field.gx, field.gy)
    baseline = hysteresis_threshold(field.magnitude, peaks, 60.0)

    rng = random.Random(3)
    for _ in range(3):
        shuffled = list(peaks.points)
        rng.shuffle(shuffled)
        again = hysteresis_threshold(field.magnitude, PeakSet(shuffled), 60.0)
        assert np.array_equal(baseline, again)


@pytest.mark.parametrize("hi", [0, -5])
def test_invalid_high_threshold(hi):
    with pytest.raises(ValueError):
        HysteresisLinker(np.zeros((3, 3)), PeakSet(), hi)
