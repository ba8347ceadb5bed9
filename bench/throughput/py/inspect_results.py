#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

import pandas as pd

from bench_csv import BenchCsvError, SeriesData, read_series
from chart_config import DEFAULT_CHARTS, ConfigError, select_charts


def _runs_per_thread(data: SeriesData) -> str:
    counts = pd.Series(data.threads).value_counts().sort_index()
    return ", ".join(f"{int(t)}x{int(n)}" for t, n in counts.items())


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Inspect throughput CSV files referenced by the charts (list metadata / export long CSV)."
    )
    parser.add_argument("data_dir", type=Path, help="Directory holding <config>/alt and <config>/std CSV files")
    parser.add_argument("--chart", action="append", default=None, help="Chart to inspect (repeatable)")
    parser.add_argument(
        "--export",
        type=Path,
        default=None,
        help="Write all readable series to one CSV (chart,series,label,threads,throughput)",
    )
    args = parser.parse_args(argv)

    data_dir: Path = args.data_dir
    if not data_dir.is_dir():
        print(f"ERROR: not a directory: {data_dir}", file=sys.stderr)
        return 2

    try:
        charts = select_charts(DEFAULT_CHARTS, args.chart)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    frames: list[pd.DataFrame] = []
    n_bad = 0
    for chart in charts:
        print(f"{chart.name} -> {chart.output}:")
        for spec in chart.series:
            p = data_dir / spec.path
            try:
                data = read_series(p, default_label=spec.name)
            except BenchCsvError as e:
                print(f"- {spec.name}: ERROR: {e}")
                n_bad += 1
                continue

            header = "header" if data.has_header else "no header"
            print(
                f"- {spec.name}: {p} label={data.label!r} ({header}), rows={data.num_points}, "
                f"threads={min(data.thread_counts)}..{max(data.thread_counts)}, runs=[{_runs_per_thread(data)}]"
            )
            df = data.to_dataframe()
            df.columns = ["threads", "throughput"]
            df.insert(0, "label", data.label)
            df.insert(0, "series", spec.name)
            df.insert(0, "chart", chart.name)
            frames.append(df)

    if args.export is not None:
        if not frames:
            print("ERROR: nothing to export", file=sys.stderr)
            return 2
        out = pd.concat(frames, ignore_index=True)
        args.export.parent.mkdir(parents=True, exist_ok=True)
        out.to_csv(args.export, index=False)
        print(f"\nExported: {len(out)} rows -> {args.export}")

    return 1 if n_bad else 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
