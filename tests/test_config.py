from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import json

import pytest

from common.config import DEFAULT_CONFIG, CannyConfig, ensure_output_dirs, load_config


def _write_json(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_defaults_without_files(tmp_path):
    cfg = load_config(tmp_path / "nope.json", tmp_path / "nope_local.json")
    assert cfg == DEFAULT_CONFIG
    cfg["canny"]["sigma"] = 9
    assert DEFAULT_CONFIG["canny"]["sigma"] == 1.0


def test_local_overrides_merge(tmp_path):
    default = _write_json(tmp_path / "default.json", {"canny": {"sigma": 2, "high_threshold": 80}})
    local = _write_json(tmp_path / "local.json", {"canny": {"high_threshold": 30}, "gradient": {"mode": "AUTO"}})
    cfg = load_config(default, local)
    assert cfg["canny"] == {"sigma": 2, "high_threshold": 30}
    assert cfg["gradient"]["mode"] == "AUTO"
    assert cfg["gradient"]["fallback_mode"] == "CPU"


def test_repository_default_file_loads():
    cfg = load_config(ROOT / "configs" / "default.json", ROOT / "configs" / "does_not_exist.json")
    params = CannyConfig.from_dict(cfg)
    assert params.sigma == 1
    assert params.high_threshold == 50


def test_canny_config_derived_values():
    params = CannyConfig(sigma=2, high_threshold=100)
    assert params.low_threshold == pytest.approx(35.0)
    assert params.kernel_dim == 13


@pytest.mark.parametrize("section", [{"sigma": 0}, {"sigma": -2}, {"high_threshold": 0}, {"high_threshold": -1}])
def test_canny_config_rejects_bad_values(section):
    with pytest.raises(ValueError):
        CannyConfig.from_dict({"canny": section})


def test_ensure_output_dirs(tmp_path):
    cfg = {
        "outputs": {
            "root": str(tmp_path / "images"),
            "metrics_csv": str(tmp_path / "reports" / "m.csv"),
        }
    }
    ensure_output_dirs(cfg)
    assert (tmp_path / "images").is_dir()
    assert (tmp_path / "reports").is_dir()
