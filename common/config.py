from __future__ import annotations

import copy
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from cpu.hysteresis import LOW_RATIO

DEFAULT_CONFIG: Dict[str, Any] = {
    "canny": {
        "sigma": 1.0,
        "high_threshold": 50.0,
    },
    "gradient": {
        "mode": "CPU",
        "allow_failover": True,
        "fallback_mode": "CPU",
        "gpu_min_pixels": 1_000_000,
    },
    "input": {
        "image_dir": "processed_images",
        "patterns": ["*.png", "*.pgm", "*.jpg", "*.jpeg", "*.bmp"],
    },
    "outputs": {
        "root": "output_images",
        "format": "pgm",
        "metrics_csv": "outputs/canny_batch.csv",
        "report_txt": "outputs/canny_batch_report.txt",
    },
    "batch": {
        "workers": 1,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base without mutating inputs."""
    merged = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(merged.get(k), dict):
            merged[k] = _deep_merge(merged[k], v)
        else:
            merged[k] = v
    return merged


def load_config(
    default_path: Path | str = Path("configs/default.json"),
    local_path: Path | str = Path("configs/local.json"),
) -> Dict[str, Any]:
    """
    Load built-in defaults, then merge the default file and local overrides when present.
    """
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    for path in (Path(default_path), Path(local_path)):
        if not path.exists():
            continue
        with path.open("r", encoding="utf-8") as f:
            cfg = _deep_merge(cfg, json.load(f))
    return cfg


def ensure_output_dirs(cfg: Dict[str, Any]) -> None:
    """
    Create output directories referenced by the config if they do not exist.
    """
    outputs = cfg.get("outputs", {})
    paths = [
        outputs.get("root"),
        Path(outputs.get("metrics_csv", "")).parent if outputs.get("metrics_csv") else None,
        Path(outputs.get("report_txt", "")).parent if outputs.get("report_txt") else None,
    ]
    for p in paths:
        if not p:
            continue
        Path(p).mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class CannyConfig:
    sigma: float = 1.0
    high_threshold: float = 50.0

    @property
    def low_threshold(self) -> float:
        return LOW_RATIO * self.high_threshold

    @property
    def kernel_dim(self) -> int:
        return 2 * int(3 * self.sigma) + 1

    def validate(self) -> "CannyConfig":
        if not self.sigma > 0:
            raise ValueError(f"sigma must be positive, got {self.sigma}")
        if not self.high_threshold > 0:
            raise ValueError(f"high_threshold must be positive, got {self.high_threshold}")
        return self

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "CannyConfig":
        section = cfg.get("canny", {})
        return cls(
            sigma=float(section.get("sigma", cls.sigma)),
            high_threshold=float(section.get("high_threshold", cls.high_threshold)),
        ).validate()
