from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from common.config import CannyConfig, ensure_output_dirs, load_config
from common.gradient_dispatch import MODES
from common.image_io import list_images
from common.pipeline import RESULT_COLUMNS, CannyRunResult, run_canny_batch
from common.report import write_csv, write_report


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Canny edge detection on grayscale images.")
    parser.add_argument("input", help="Image file, or directory of images for batch mode.")
    parser.add_argument("--high", type=float, default=None, help="High hysteresis threshold (0-255 scale).")
    parser.add_argument("--sigma", type=float, default=None, help="Gaussian smoothing parameter.")
    parser.add_argument("--config", default="configs/default.json", help="Default config JSON.")
    parser.add_argument("--local-config", default="configs/local.json", help="Local override JSON.")
    parser.add_argument("--out-dir", default=None, help="Directory for output images.")
    parser.add_argument("--mode", choices=MODES, default=None, help="Gradient backend.")
    parser.add_argument("--workers", type=int, default=None, help="Parallel images in batch mode.")
    parser.add_argument("--format", dest="fmt", default=None, help="Output image extension (default pgm).")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Load the config files, then apply command-line overrides.
    """
    cfg = load_config(args.config, args.local_config)

    if args.high is not None:
        cfg["canny"]["high_threshold"] = args.high
    if args.sigma is not None:
        cfg["canny"]["sigma"] = args.sigma
    if args.mode is not None:
        cfg["gradient"]["mode"] = args.mode
    if args.workers is not None:
        cfg["batch"]["workers"] = args.workers
    if args.out_dir is not None:
        cfg["outputs"]["root"] = args.out_dir
    if args.fmt is not None:
        cfg["outputs"]["format"] = args.fmt
    return cfg


def _summary_lines(cfg: Dict[str, Any], params: CannyConfig, results: List[CannyRunResult]) -> List[str]:
    failed = [r for r in results if not r.ok]
    lines = [
        f"images_processed: {len(results)}",
        f"images_failed: {len(failed)}",
        f"sigma: {params.sigma}",
        f"kernel_dim: {params.kernel_dim}",
        f"high_threshold: {params.high_threshold}",
        f"low_threshold: {params.low_threshold}",
        f"gradient_mode: {cfg['gradient'].get('mode', 'CPU')}",
        "",
        "Per-image results:",
    ]
    for r in results:
        status = "OK" if r.ok else f"FAIL ({r.error})"
        lines.append(f"  {r.image}: peaks={r.peaks}, edges={r.edges} [{status}]")
    return lines


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    cfg = build_config(args)

    try:
        params = CannyConfig.from_dict(cfg)
    except ValueError as exc:
        print(f"Invalid parameters: {exc}")
        return 2

    ensure_output_dirs(cfg)

    input_path = Path(args.input)
    if input_path.is_dir():
        paths = list_images(input_path, cfg["input"].get("patterns", ["*.png"]))
    else:
        paths = [input_path]

    if not paths:
        print(f"No images found in {input_path}")
        return 1

    print(
        f"Processing {len(paths)} image(s): sigma={params.sigma} "
        f"hi={params.high_threshold} lo={params.low_threshold}"
    )
    results = run_canny_batch(paths, cfg)

    outputs = cfg["outputs"]
    if len(paths) > 1:
        csv_path = Path(outputs["metrics_csv"])
        report_path = Path(outputs["report_txt"])
        write_csv(csv_path, RESULT_COLUMNS, [r.as_row() for r in results])
        write_report(report_path, "Canny Batch Report", _summary_lines(cfg, params, results))
        print(f"Metrics: {csv_path}")
        print(f"Report: {report_path}")

    failed = sum(1 for r in results if not r.ok)
    print(f"Overall: {'PASS' if failed == 0 else 'FAIL'} ({len(results) - failed}/{len(results)} ok)")
    return 0 if failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
