from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List

import cv2
import numpy as np

from cpu.canny import EdgeMap

OUTPUT_SUFFIXES = ("mag", "peaks", "final")
SUPPORTED_FORMATS = ("pgm", "png", "bmp", "tif", "tiff")


def load_gray(image_path: str | Path) -> np.ndarray:
    """
    Decode an image file to a 2D uint8 grid.

    Args:
        image_path: Path to the image file. Color images are converted to grayscale.

    Returns:
        np.ndarray with shape (height, width), dtype uint8.
    """
    path = Path(image_path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    gray = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
    if gray is None:
        raise RuntimeError(f"Failed to decode image: {path}")
    return gray


def list_images(image_dir: str | Path, patterns: Iterable[str]) -> List[Path]:
    """
    Collect image files matching any of the glob patterns, sorted by path.
    """
    root = Path(image_dir)
    if not root.is_dir():
        raise FileNotFoundError(f"Image directory not found: {root}")

    found = set()
    for pattern in patterns:
        found.update(p for p in root.glob(pattern) if p.is_file())
    return sorted(found)


def to_display_u8(grid: np.ndarray) -> np.ndarray:
    """
    Truncate a 0-255 float grid to uint8 (fractional part dropped).
    """
    return np.clip(grid, 0, 255).astype(np.uint8)


def save_edge_map(
    edge_map: EdgeMap,
    out_dir: str | Path,
    stem: str = "canny",
    fmt: str = "pgm",
) -> Dict[str, Path]:
    """
    Write the magnitude, peak and final grids as <stem>_mag, <stem>_peaks, <stem>_final.

    Returns:
        dict mapping suffix -> written path
    """
    fmt = fmt.lower().lstrip(".")
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported output format: {fmt}")

    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)

    grids = {
        "mag": to_display_u8(edge_map.magnitude),
        "peaks": edge_map.peak_grid,
        "final": edge_map.edges,
    }

    written = {}
    for suffix in OUTPUT_SUFFIXES:
        path = out / f"{stem}_{suffix}.{fmt}"
        if not cv2.imwrite(str(path), grids[suffix]):
            raise RuntimeError(f"Failed to write image: {path}")
        written[suffix] = path
    return written
