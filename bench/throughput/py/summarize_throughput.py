#!/usr/bin/env python3
from __future__ import annotations

import argparse
import math
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from bench_csv import BenchCsvError, SeriesData, read_series
from chart_config import DEFAULT_CHARTS, ConfigError, select_charts


@dataclass(frozen=True)
class ThreadStats:
    threads: int
    n: int
    mean: float
    median: float
    min: float
    max: float
    std: float


@dataclass(frozen=True)
class MedianRatio:
    threads: int
    median_a: float
    median_b: float
    ratio: float


def summarize_series(series: SeriesData) -> list[ThreadStats]:
    df = pd.DataFrame({"threads": series.threads, "tput": series.throughput})
    g = df.groupby("threads", sort=True)["tput"]
    agg = g.agg(["count", "mean", "median", "min", "max"])
    # Sample std with a single run is undefined; report 0 instead of NaN.
    std = g.std(ddof=1).fillna(0.0)
    return [
        ThreadStats(
            threads=int(t),
            n=int(row["count"]),
            mean=float(row["mean"]),
            median=float(row["median"]),
            min=float(row["min"]),
            max=float(row["max"]),
            std=float(std.loc[t]),
        )
        for t, row in agg.iterrows()
    ]


def compare_medians(a: SeriesData, b: SeriesData) -> list[MedianRatio]:
    """Median throughput of `a` over `b` for every thread count present in both."""
    sa = {s.threads: s.median for s in summarize_series(a)}
    sb = {s.threads: s.median for s in summarize_series(b)}
    out: list[MedianRatio] = []
    for t in sorted(set(sa) & set(sb)):
        ma, mb = sa[t], sb[t]
        ratio = ma / mb if mb > 0.0 else float("nan")
        out.append(MedianRatio(threads=t, median_a=ma, median_b=mb, ratio=ratio))
    return out


def overall_stats(series: SeriesData) -> dict[str, float]:
    x = np.asarray(series.throughput, dtype=float)
    return {
        "min": float(np.min(x)),
        "p50": float(np.percentile(x, 50.0)),
        "p95": float(np.percentile(x, 95.0)),
        "max": float(np.max(x)),
    }


def _fmt_ratio(r: float) -> str:
    return "n/a" if not math.isfinite(r) else f"{r:.3f}x"


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Summarize throughput runs per sender-thread count.")
    ap.add_argument("--data-dir", type=Path, default=Path("."))
    ap.add_argument("--chart", action="append", default=None)
    args = ap.parse_args(argv)

    try:
        charts = select_charts(DEFAULT_CHARTS, args.chart)
        for chart in charts:
            series = [read_series(args.data_dir / s.path, default_label=s.name) for s in chart.series]
            print(f"\n== {chart.name} ==")
            for data in series:
                print(f"{data.label} ({data.path}, n={data.num_points}):")
                ov = overall_stats(data)
                print(f"  all runs: min={ov['min']:.1f}, p50={ov['p50']:.1f}, p95={ov['p95']:.1f}, max={ov['max']:.1f}")
                print("  threads  runs        mean      median         min         max         std")
                for st in summarize_series(data):
                    print(
                        f"  {st.threads:7d}  {st.n:4d}  {st.mean:10.1f}  {st.median:10.1f}"
                        f"  {st.min:10.1f}  {st.max:10.1f}  {st.std:10.1f}"
                    )
            if len(series) == 2:
                a, b = series
                print(f"median ratio {a.label}/{b.label}:")
                for r in compare_medians(a, b):
                    print(f"  threads={r.threads}: {_fmt_ratio(r.ratio)}")
    except (BenchCsvError, ConfigError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
