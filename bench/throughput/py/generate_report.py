#!/usr/bin/env python3
from __future__ import annotations

import argparse
import datetime as _dt
import math
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from bench_csv import BenchCsvError
from chart_config import DEFAULT_CHARTS, ChartSpec, ConfigError, select_charts
from plot_throughput import PlotError, RenderResult, load_chart_series, render_series
from summarize_throughput import ThreadStats, compare_medians, overall_stats, summarize_series


DEFAULT_REPORT_DIRNAME = "report"


class ReportError(RuntimeError):
    pass


@dataclass(frozen=True)
class ReportArtifacts:
    report_dir: Path
    markdown_path: Path
    plot_paths: list[Path]
    stats: dict[str, dict[str, list[ThreadStats]]]


def _fmt_float(x: float) -> str:
    if not math.isfinite(x):
        return "nan"
    ax = abs(float(x))
    if ax != 0.0 and (ax < 1e-3 or ax >= 1e7):
        return f"{x:.3e}"
    return f"{x:.1f}"


def _write_markdown(path: Path, lines: Sequence[str]) -> None:
    path.write_text("\n".join(lines).rstrip() + "\n", encoding="utf-8")


def _stats_table(rows: Sequence[ThreadStats]) -> list[str]:
    lines = [
        "| Threads | Runs | Mean | Median | Min | Max | Std |",
        "|---:|---:|---:|---:|---:|---:|---:|",
    ]
    for st in rows:
        lines.append(
            "| "
            + " | ".join(
                [
                    str(st.threads),
                    str(st.n),
                    _fmt_float(st.mean),
                    _fmt_float(st.median),
                    _fmt_float(st.min),
                    _fmt_float(st.max),
                    _fmt_float(st.std),
                ]
            )
            + " |"
        )
    return lines


def generate_report(
    data_dir: Path,
    *,
    report_dir: Optional[Path] = None,
    charts: Sequence[ChartSpec] = DEFAULT_CHARTS,
    median_line: bool = False,
    timestamp: bool = True,
) -> ReportArtifacts:
    if not data_dir.is_dir():
        raise ReportError(f"not a directory: {data_dir}")
    if not charts:
        raise ReportError("no charts selected")

    report_dir = report_dir if report_dir is not None else (data_dir / DEFAULT_REPORT_DIRNAME)
    plots_dir = report_dir / "plots"
    try:
        plots_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ReportError(f"cannot create report directory {plots_dir}: {e}") from e
    md_path = report_dir / "report.md"

    lines: list[str] = []
    lines.append("# Channel throughput report")
    lines.append("")
    if timestamp:
        lines.append(f"- Generated: {_dt.datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append(f"- Data directory: `{data_dir}`")
    lines.append(f"- Charts: {', '.join(c.name for c in charts)}")
    lines.append("")

    plot_paths: list[Path] = []
    all_stats: dict[str, dict[str, list[ThreadStats]]] = {}
    for chart in charts:
        series = load_chart_series(chart, data_dir)
        result: RenderResult = render_series(chart, series, plots_dir, fmt="svg", median_line=median_line)
        plot_paths.append(result.path)

        lines.append(f"## {chart.name}")
        lines.append("")
        lines.append(f"![{result.path.name}](plots/{result.path.name})")
        lines.append("")

        chart_stats: dict[str, list[ThreadStats]] = {}
        for spec, data in zip(chart.series, series):
            rows = summarize_series(data)
            chart_stats[data.label] = rows
            ov = overall_stats(data)
            lines.append(f"### {data.label}")
            lines.append("")
            lines.append(f"- Source: `{data.path}` ({data.num_points} runs, slot `{spec.name}`)")
            lines.append(
                f"- All runs: min {_fmt_float(ov['min'])}, p50 {_fmt_float(ov['p50'])}, "
                f"p95 {_fmt_float(ov['p95'])}, max {_fmt_float(ov['max'])}"
            )
            lines.append("")
            lines.extend(_stats_table(rows))
            lines.append("")
        all_stats[chart.name] = chart_stats

        if len(series) == 2:
            a, b = series
            ratios = compare_medians(a, b)
            lines.append(f"### Median ratio {a.label}/{b.label}")
            lines.append("")
            if ratios:
                lines.append(f"| Threads | Median {a.label} | Median {b.label} | Ratio |")
                lines.append("|---:|---:|---:|---:|")
                for r in ratios:
                    ratio = "n/a" if not math.isfinite(r.ratio) else f"{r.ratio:.3f}"
                    lines.append(
                        f"| {r.threads} | {_fmt_float(r.median_a)} | {_fmt_float(r.median_b)} | {ratio} |"
                    )
            else:
                lines.append("No thread counts in common.")
            lines.append("")

    _write_markdown(md_path, lines)

    return ReportArtifacts(
        report_dir=report_dir,
        markdown_path=md_path,
        plot_paths=plot_paths,
        stats=all_stats,
    )


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Generate a throughput report (Markdown + SVG charts).")
    parser.add_argument("data_dir", type=Path, help="Directory holding <config>/alt and <config>/std CSV files")
    parser.add_argument(
        "--output-dir",
        dest="report_dir",
        type=Path,
        default=None,
        help=f"Report output directory (default: <data_dir>/{DEFAULT_REPORT_DIRNAME}/)",
    )
    parser.add_argument("--chart", action="append", default=None, help="Chart to include (repeatable)")
    parser.add_argument("--median-line", action="store_true", help="Draw per-thread-count median lines")
    parser.add_argument(
        "--no-timestamp",
        action="store_true",
        help="Omit the generation time so identical inputs give an identical report.md",
    )
    args = parser.parse_args(argv)

    data_dir: Path = args.data_dir
    if not data_dir.is_dir():
        print(f"ERROR: not a directory: {data_dir}", file=sys.stderr)
        return 2

    try:
        charts = select_charts(DEFAULT_CHARTS, args.chart)
        artifacts = generate_report(
            data_dir,
            report_dir=args.report_dir,
            charts=charts,
            median_line=bool(args.median_line),
            timestamp=not args.no_timestamp,
        )
    except (ReportError, BenchCsvError, ConfigError, PlotError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    print("Throughput report")
    print(f"- data_dir: {data_dir}")
    print(f"- report_dir: {artifacts.report_dir}")
    print(f"- report_md: {artifacts.markdown_path}")
    for p in artifacts.plot_paths:
        print(f"- plot: {p}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
