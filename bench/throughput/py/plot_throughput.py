#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from bench_csv import BenchCsvError, SeriesData, read_series
from chart_config import (
    DEFAULT_CHARTS,
    SUPPORTED_FORMATS,
    ChartSpec,
    ConfigError,
    apply_config,
    config_format,
    parse_bool,
    read_plot_config,
    select_charts,
)

try:
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt
    from matplotlib.figure import Figure
except ImportError as e:  # pragma: no cover
    raise SystemExit("ERROR: missing dependency 'matplotlib' (try: python3 -m pip install matplotlib)") from e


# One point per pixel: an SVG written at this DPI has width/height equal to
# the chart's pixel size, and PNG output matches it.
_DPI = 72
_SVG_HASHSALT = "throughput-plots"


class PlotError(RuntimeError):
    pass


@dataclass(frozen=True)
class RenderResult:
    chart: ChartSpec
    path: Path
    labels: tuple[str, ...]
    point_counts: tuple[int, ...]


def _plot_rc() -> dict:
    return {
        "font.size": 14,
        "axes.titlesize": 15,
        "axes.labelsize": 14,
        "xtick.labelsize": 12,
        "ytick.labelsize": 12,
        "legend.fontsize": 13,
        "axes.spines.top": False,
        "axes.spines.right": False,
        "grid.alpha": 0.3,
        "grid.linewidth": 0.8,
        "svg.hashsalt": _SVG_HASHSALT,
        "svg.fonttype": "path",
        "savefig.transparent": False,
    }


def _save_metadata(fmt: str) -> Optional[dict]:
    # Drop timestamps so identical inputs give identical files.
    if fmt == "svg":
        return {"Date": None}
    if fmt == "pdf":
        return {"CreationDate": None, "ModDate": None}
    return None


def load_chart_series(chart: ChartSpec, data_dir: Path) -> list[SeriesData]:
    if not chart.series:
        raise PlotError(f"chart {chart.name!r} has no series")
    return [read_series(data_dir / s.path, default_label=s.name) for s in chart.series]


def _median_by_threads(data: SeriesData) -> tuple[np.ndarray, np.ndarray]:
    xs = np.unique(data.threads)
    ys = np.asarray([float(np.median(data.throughput[data.threads == x])) for x in xs], dtype=float)
    return xs, ys


def build_figure(chart: ChartSpec, series: Sequence[SeriesData], *, median_line: bool = False) -> Figure:
    if len(series) != len(chart.series):
        raise PlotError(f"chart {chart.name!r}: expected {len(chart.series)} series, got {len(series)}")

    fig, ax = plt.subplots(1, 1, figsize=(chart.width / _DPI, chart.height / _DPI), dpi=_DPI)

    for spec, data in zip(chart.series, series):
        (line,) = ax.plot(
            data.threads,
            data.throughput,
            linestyle="none",
            marker=spec.marker,
            markersize=8,
            color=spec.color,
            label=data.label,
        )
        line.set_gid(f"series-{spec.name}")
        if median_line:
            xs, ys = _median_by_threads(data)
            (med,) = ax.plot(xs, ys, lw=1.2, alpha=0.7, color=spec.color, label=f"_median {data.label}")
            med.set_gid(f"median-{spec.name}")

    ticks = sorted({t for data in series for t in data.thread_counts})
    ax.set_xticks(ticks)
    ax.set_ylim(bottom=0.0)
    ax.set_xlabel(chart.xlabel)
    ax.set_ylabel(chart.ylabel)
    if chart.title:
        ax.set_title(chart.title)
    ax.grid(True, ls="--")

    if chart.legend == "outside":
        ax.legend(loc="upper left", bbox_to_anchor=(1.01, 1.0), borderaxespad=0.0, frameon=True)
    else:
        ax.legend(loc="best", frameon=True)

    fig.tight_layout()
    return fig


def render_series(
    chart: ChartSpec,
    series: Sequence[SeriesData],
    outdir: Path,
    *,
    fmt: str = "svg",
    median_line: bool = False,
) -> RenderResult:
    if fmt not in SUPPORTED_FORMATS:
        raise PlotError(f"unsupported output format: {fmt!r}")

    out_path = outdir / chart.output_name(fmt)

    with plt.rc_context(_plot_rc()):
        fig = build_figure(chart, series, median_line=median_line)
        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            fig.savefig(out_path, format=fmt, dpi=_DPI, metadata=_save_metadata(fmt))
        except OSError as e:
            raise PlotError(f"cannot write {out_path}: {e}") from e
        finally:
            plt.close(fig)

    return RenderResult(
        chart=chart,
        path=out_path,
        labels=tuple(s.label for s in series),
        point_counts=tuple(s.num_points for s in series),
    )


def render_chart(
    chart: ChartSpec,
    data_dir: Path,
    outdir: Path,
    *,
    fmt: str = "svg",
    median_line: bool = False,
) -> RenderResult:
    if fmt not in SUPPORTED_FORMATS:
        raise PlotError(f"unsupported output format: {fmt!r}")
    series = load_chart_series(chart, data_dir)
    return render_series(chart, series, outdir, fmt=fmt, median_line=median_line)


def render_all(
    charts: Sequence[ChartSpec],
    data_dir: Path,
    outdir: Path,
    *,
    fmt: str = "svg",
    median_line: bool = False,
) -> list[RenderResult]:
    return [render_chart(c, data_dir, outdir, fmt=fmt, median_line=median_line) for c in charts]


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Render channel throughput CSVs (alt vs std) into charts.")
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path("."),
        help="Directory holding <config>/alt and <config>/std CSV files (default: .)",
    )
    parser.add_argument("--outdir", type=Path, default=Path("."), help="Output directory for charts (default: .)")
    parser.add_argument(
        "--chart",
        action="append",
        default=None,
        help="Chart to render (repeatable; default: all of %s)" % ", ".join(c.name for c in DEFAULT_CHARTS),
    )
    parser.add_argument("--config", type=Path, default=None, help="Optional KEY VALUE plot config file")
    parser.add_argument(
        "--format",
        dest="fmt",
        choices=SUPPORTED_FORMATS,
        default=None,
        help="Output format (default: FORMAT from --config, else svg)",
    )
    parser.add_argument(
        "--median-line",
        action="store_true",
        help="Connect the per-thread-count medians of each series",
    )
    args = parser.parse_args(argv)

    data_dir: Path = args.data_dir
    if not data_dir.is_dir():
        print(f"ERROR: not a directory: {data_dir}", file=sys.stderr)
        return 2

    try:
        cfg: dict[str, str] = read_plot_config(args.config) if args.config is not None else {}
        charts = select_charts(apply_config(DEFAULT_CHARTS, cfg), args.chart)
        fmt = args.fmt if args.fmt is not None else config_format(cfg)
        median_line = bool(args.median_line) or parse_bool(cfg.get("MEDIAN_LINE"))
        results = render_all(charts, data_dir, args.outdir, fmt=fmt, median_line=median_line)
    except (BenchCsvError, ConfigError, PlotError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    for r in results:
        parts = ", ".join(f"{label}: {n} points" for label, n in zip(r.labels, r.point_counts))
        print(f"OK: wrote {r.path} ({parts})")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
