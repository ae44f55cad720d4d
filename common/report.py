from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, List, Sequence


def write_csv(path: Path, header: Sequence[str], rows: Iterable[Sequence]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for row in rows:
            writer.writerow(row)


def write_report(path: Path, title: str, lines: List[str]) -> None:
    """
    Write a plain-text report: title, rule, then the given lines.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    report_lines = [title, "=" * 70, ""] + list(lines)
    path.write_text("\n".join(report_lines) + "\n", encoding="utf-8")
