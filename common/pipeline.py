from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from common.config import CannyConfig
from common.gradient_dispatch import dispatch_gradient
from common.image_io import load_gray, save_edge_map
from cpu.canny import EdgeMap, canny_from_gradient
from cpu.kernels import build_derivative_kernels

RESULT_COLUMNS = [
    "image",
    "height",
    "width",
    "backend",
    "peaks",
    "edges",
    "t_gradient_ms",
    "t_peaks_ms",
    "t_hysteresis_ms",
    "status",
]


@dataclass
class CannyRunResult:
    image: str
    height: int = 0
    width: int = 0
    backend: str = ""
    peaks: int = 0
    edges: int = 0
    timings: Dict[str, float] = field(default_factory=dict)
    outputs: Dict[str, Path] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_row(self) -> List[Any]:
        return [
            self.image,
            self.height,
            self.width,
            self.backend,
            self.peaks,
            self.edges,
            round(self.timings.get("t_gradient_ms", 0.0), 3),
            round(self.timings.get("t_peaks_ms", 0.0), 3),
            round(self.timings.get("t_hysteresis_ms", 0.0), 3),
            "ok" if self.ok else f"error: {self.error}",
        ]


def run_canny(gray: np.ndarray, cfg: Dict[str, Any]) -> EdgeMap:
    """
    Configured Canny pipeline: masks, dispatched gradient, peaks, hysteresis.

    Parameters are validated before any grid work starts.
    """
    params = CannyConfig.from_dict(cfg)
    if gray.ndim != 2:
        raise ValueError("run_canny expects 2D grayscale image")

    maskx, masky = build_derivative_kernels(params.sigma)
    grad, timings = dispatch_gradient(gray, maskx, masky, cfg)
    backend = timings.pop("backend", "CPU")

    edge_map = canny_from_gradient(grad, params.high_threshold, timings)
    edge_map.backend = backend
    return edge_map


def run_canny_file(
    image_path: str | Path,
    cfg: Dict[str, Any],
    out_dir: str | Path | None = None,
) -> CannyRunResult:
    """
    Decode one image, run the pipeline and write its three output grids.
    """
    path = Path(image_path)
    outputs = cfg.get("outputs", {})
    out_dir = Path(out_dir or outputs.get("root", "output_images"))
    fmt = outputs.get("format", "pgm")

    gray = load_gray(path)
    edge_map = run_canny(gray, cfg)
    written = save_edge_map(edge_map, out_dir, stem=path.stem, fmt=fmt)

    h, w = edge_map.shape
    return CannyRunResult(
        image=str(path),
        height=h,
        width=w,
        backend=edge_map.backend,
        peaks=len(edge_map.peaks),
        edges=edge_map.edge_count,
        timings=dict(edge_map.timings),
        outputs=written,
    )


def _run_one(image_path: Path, cfg: Dict[str, Any], out_dir: Path | None) -> CannyRunResult:
    try:
        result = run_canny_file(image_path, cfg, out_dir)
    except Exception as exc:
        # Fatal for this image only; runs share no state
        result = CannyRunResult(image=str(image_path), error=f"{type(exc).__name__}: {exc}")
        print(f"[canny] FAILED {image_path}: {result.error}")
        return result

    print(
        f"[canny] {result.image} {result.width}x{result.height} backend={result.backend} "
        f"peaks={result.peaks} edges={result.edges} "
        f"gradient={result.timings.get('t_gradient_ms', 0.0):.1f}ms "
        f"peaks={result.timings.get('t_peaks_ms', 0.0):.1f}ms "
        f"hysteresis={result.timings.get('t_hysteresis_ms', 0.0):.1f}ms"
    )
    return result


def run_canny_batch(
    image_paths: Sequence[str | Path],
    cfg: Dict[str, Any],
    workers: int | None = None,
    out_dir: str | Path | None = None,
) -> List[CannyRunResult]:
    """
    Run the pipeline over independent images, results in input order.

    Args:
        image_paths: Images to process.
        cfg: Configuration dict.
        workers: Thread count; defaults to cfg["batch"]["workers"].
        out_dir: Output directory; defaults to cfg["outputs"]["root"].

    Returns:
        One CannyRunResult per input image. Failures are recorded, not raised.
    """
    # Invalid parameters fail before any image is read
    CannyConfig.from_dict(cfg)

    if workers is None:
        workers = int(cfg.get("batch", {}).get("workers", 1))
    workers = max(1, int(workers))
    out = Path(out_dir) if out_dir is not None else None
    paths = [Path(p) for p in image_paths]

    if workers == 1 or len(paths) <= 1:
        return [_run_one(p, cfg, out) for p in paths]

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="canny") as pool:
        return list(pool.map(lambda p: _run_one(p, cfg, out), paths))
