from __future__ import annotations

from typing import Dict, Iterable, Tuple

import numpy as np

from cpu.peaks import PeakSet


def uniform_image(shape: Tuple[int, int] = (5, 5), value: int = 100) -> np.ndarray:
    return np.full(shape, value, dtype=np.uint8)


def step_image(shape: Tuple[int, int] = (5, 5), first_bright_col: int = 3, value: int = 255) -> np.ndarray:
    """
    Vertical step edge: columns before first_bright_col are 0, the rest are value.
    """
    img = np.zeros(shape, dtype=np.uint8)
    img[:, first_bright_col:] = value
    return img


def square_image(size: int = 32, margin: int = 8, value: int = 200) -> np.ndarray:
    img = np.zeros((size, size), dtype=np.uint8)
    img[margin:size - margin, margin:size - margin] = value
    return img


def noisy_square_image(size: int = 48, seed: int = 7) -> np.ndarray:
    rng = np.random.default_rng(seed)
    img = square_image(size, size // 4, 180).astype(np.float64)
    img += rng.normal(0.0, 12.0, img.shape)
    return np.clip(img, 0, 255).astype(np.uint8)


def magnitude_grid(shape: Tuple[int, int], values: Dict[Tuple[int, int], float]) -> np.ndarray:
    """
    Zero grid with the given cells set, for driving the hysteresis stage directly.
    """
    mag = np.zeros(shape, dtype=np.float64)
    for (r, c), v in values.items():
        mag[r, c] = v
    return mag


def peaks_at(points: Iterable[Tuple[int, int]]) -> PeakSet:
    return PeakSet(points)


def rms(a: np.ndarray, b: np.ndarray) -> float:
    diff = a.astype(np.float64) - b.astype(np.float64)
    return float(np.sqrt(np.mean(diff * diff)))
