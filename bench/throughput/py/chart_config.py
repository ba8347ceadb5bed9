from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Sequence

from matplotlib.colors import is_color_like
from matplotlib.markers import MarkerStyle


DEFAULT_WIDTH = 1400
DEFAULT_HEIGHT = 750
DEFAULT_FORMAT = "svg"
DEFAULT_XLABEL = "Sender Threads"
DEFAULT_YLABEL = "Throughput (messages/millisecond)"
SUPPORTED_FORMATS = ("svg", "png", "pdf")

# Okabe–Ito colors, fixed per series slot so that a slot keeps its color
# whichever file it is pointed at.
COLOR_ALT = "#D55E00"  # vermillion
COLOR_STD = "#0072B2"  # blue
MARKER_ALT = "o"
MARKER_STD = "^"


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class SeriesSpec:
    name: str
    path: Path
    color: str
    marker: str


@dataclass(frozen=True)
class ChartSpec:
    name: str
    series: tuple[SeriesSpec, ...]
    output: str
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    xlabel: str = DEFAULT_XLABEL
    ylabel: str = DEFAULT_YLABEL
    title: Optional[str] = None
    legend: str = "outside"

    def output_name(self, fmt: str) -> str:
        stem = Path(self.output).stem
        return f"{stem}.{fmt}"


def _queue_chart(config: str) -> ChartSpec:
    return ChartSpec(
        name=config,
        series=(
            SeriesSpec(name="alt", path=Path(config) / "alt", color=COLOR_ALT, marker=MARKER_ALT),
            SeriesSpec(name="std", path=Path(config) / "std", color=COLOR_STD, marker=MARKER_STD),
        ),
        output=f"{config}.svg",
    )


DEFAULT_CHARTS: tuple[ChartSpec, ...] = (
    _queue_chart("unbounded"),
    _queue_chart("rendezvous"),
)


def read_plot_config(path: Path) -> dict[str, str]:
    """Parse `KEY VALUE` lines; the value is the rest of the line."""
    if not path.exists():
        raise ConfigError(f"missing plot config file: {path}")
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise ConfigError(f"cannot read plot config file {path}: {e}") from e
    m: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split(None, 1)
        if len(parts) != 2:
            continue
        key, value = parts[0].strip().upper(), parts[1].strip()
        if key:
            m[key] = value
    return m


def _parse_int(m: dict[str, str], key: str, default: int) -> int:
    raw = m.get(key)
    if raw is None:
        return default
    try:
        v = int(float(raw))
    except (ValueError, OverflowError):
        return default
    return v if v > 0 else default


def parse_bool(raw: Optional[str], default: bool = False) -> bool:
    if raw is None:
        return default
    s = raw.strip().upper()
    if s in ("1", "ON", "YES", "TRUE"):
        return True
    if s in ("0", "OFF", "NO", "FALSE"):
        return False
    return default


def config_format(m: dict[str, str], default: str = DEFAULT_FORMAT) -> str:
    fmt = m.get("FORMAT", default).strip().lower()
    if fmt not in SUPPORTED_FORMATS:
        raise ConfigError(f"unsupported FORMAT={fmt!r} (expected one of: {', '.join(SUPPORTED_FORMATS)})")
    return fmt


def _checked_color(key: str, raw: str) -> str:
    if not is_color_like(raw):
        raise ConfigError(f"invalid {key}={raw!r} (not a matplotlib color)")
    return raw


def _checked_marker(key: str, raw: str) -> str:
    try:
        MarkerStyle(raw)
    except ValueError as e:
        raise ConfigError(f"invalid {key}={raw!r} (not a matplotlib marker)") from e
    return raw


def _series_override(m: dict[str, str], s: SeriesSpec) -> SeriesSpec:
    color_key = f"COLOR_{s.name.upper()}"
    marker_key = f"MARKER_{s.name.upper()}"
    color = _checked_color(color_key, m[color_key]) if color_key in m else s.color
    marker = _checked_marker(marker_key, m[marker_key]) if marker_key in m else s.marker
    return replace(s, color=color, marker=marker)


def apply_config(charts: Sequence[ChartSpec], m: dict[str, str]) -> tuple[ChartSpec, ...]:
    out: list[ChartSpec] = []
    for chart in charts:
        series = tuple(_series_override(m, s) for s in chart.series)
        out.append(
            replace(
                chart,
                series=series,
                width=_parse_int(m, "WIDTH", chart.width),
                height=_parse_int(m, "HEIGHT", chart.height),
                xlabel=m.get("XLABEL", chart.xlabel),
                ylabel=m.get("YLABEL", chart.ylabel),
                title=m.get(f"TITLE_{chart.name.upper()}", chart.title),
            )
        )
    return tuple(out)


def select_charts(charts: Sequence[ChartSpec], names: Optional[Sequence[str]]) -> tuple[ChartSpec, ...]:
    if not names:
        return tuple(charts)
    by_name = {c.name: c for c in charts}
    picked: list[ChartSpec] = []
    for name in dict.fromkeys(names):
        if name not in by_name:
            known = ", ".join(sorted(by_name))
            raise ConfigError(f"unknown chart {name!r} (known: {known})")
        picked.append(by_name[name])
    return tuple(picked)
