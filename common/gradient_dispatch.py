"""
Gradient field dispatch supporting CPU, GPU, and AUTO modes.
"""

from __future__ import annotations

import time
from typing import Any, Dict

import numpy as np

try:
    import cupy as cp
    from gpu.gradient import gpu_gradient_field
except Exception as exc:
    cp = None
    gpu_gradient_field = None
    _gpu_import_error = exc
else:
    _gpu_import_error = None

from cpu.gradient import GradientField, cpu_gradient_field

MODES = ("CPU", "GPU", "AUTO")


def _now_ms() -> float:
    return time.perf_counter() * 1000.0


def _run_cpu(pic: np.ndarray, maskx: np.ndarray, masky: np.ndarray) -> tuple[GradientField, dict]:
    t0 = _now_ms()
    field = cpu_gradient_field(pic, maskx, masky)
    return field, {"t_gradient_ms": _now_ms() - t0, "backend": "CPU"}


def _run_gpu(pic: np.ndarray, maskx: np.ndarray, masky: np.ndarray) -> tuple[GradientField, dict]:
    t0 = _now_ms()
    pic_gpu = cp.asarray(pic)
    gx_gpu, gy_gpu, mag_gpu = gpu_gradient_field(pic_gpu, maskx, masky)
    field = GradientField(
        gx=cp.asnumpy(gx_gpu),
        gy=cp.asnumpy(gy_gpu),
        magnitude=cp.asnumpy(mag_gpu),
    )
    return field, {"t_gradient_ms": _now_ms() - t0, "backend": "GPU"}


def _fallback(
    pic: np.ndarray,
    maskx: np.ndarray,
    masky: np.ndarray,
    fallback_mode: str,
) -> tuple[GradientField, dict]:
    if fallback_mode == "CPU":
        return _run_cpu(pic, maskx, masky)
    raise ValueError(f"Fallback mode {fallback_mode} not supported")


def dispatch_gradient(
    pic: np.ndarray,
    maskx: np.ndarray,
    masky: np.ndarray,
    cfg: Dict[str, Any],
) -> tuple[GradientField, dict]:
    """
    Compute the gradient field on the backend selected by cfg["gradient"]["mode"].

    Args:
        pic: 2D grayscale grid (host numpy array)
        maskx: x-derivative mask
        masky: y-derivative mask
        cfg: Configuration dict

    Returns:
        field: GradientField with host numpy grids
        timings: dict with t_gradient_ms and the backend actually used
    """
    if pic.ndim != 2:
        raise ValueError("dispatch_gradient expects 2D grayscale image")

    grad_cfg = cfg.get("gradient", {})
    mode = str(grad_cfg.get("mode", "CPU")).upper()
    allow_failover = bool(grad_cfg.get("allow_failover", False))
    fallback_mode = str(grad_cfg.get("fallback_mode", "CPU")).upper()

    if mode == "CPU":
        return _run_cpu(pic, maskx, masky)

    elif mode == "GPU":
        if gpu_gradient_field is None:
            if allow_failover:
                return _fallback(pic, maskx, masky, fallback_mode)
            # No failover - propagate error
            raise RuntimeError(f"GPU gradient unavailable: {_gpu_import_error}")

        try:
            return _run_gpu(pic, maskx, masky)
        except Exception:
            if allow_failover:
                return _fallback(pic, maskx, masky, fallback_mode)
            raise

    elif mode == "AUTO":
        # GPU only at or above gpu_min_pixels
        gpu_min_pixels = int(grad_cfg.get("gpu_min_pixels", 1_000_000))
        h, w = pic.shape
        if gpu_gradient_field is not None and h * w >= gpu_min_pixels:
            try:
                return _run_gpu(pic, maskx, masky)
            except Exception:
                # CuPy imported but no usable device
                pass
        return _run_cpu(pic, maskx, masky)

    else:
        raise ValueError(f"Unknown gradient mode: {mode}")
