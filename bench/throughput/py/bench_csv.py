from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional, Union

import numpy as np


class BenchCsvError(RuntimeError):
    def __init__(self, message: str, *, path: Optional[Path] = None, line: Optional[int] = None) -> None:
        if path is not None and line is not None:
            prefix = f"{path}:{line}: "
        elif path is not None:
            prefix = f"{path}: "
        else:
            prefix = ""
        super().__init__(f"{prefix}{message}")
        self.path = path
        self.line = line


@dataclass(frozen=True)
class SeriesData:
    path: Path
    label: str
    threads: np.ndarray
    throughput: np.ndarray
    has_header: bool = False

    @property
    def num_points(self) -> int:
        return int(self.threads.size)

    @property
    def thread_counts(self) -> tuple[int, ...]:
        return tuple(int(x) for x in np.unique(self.threads))

    def to_dataframe(self) -> Any:
        import pandas as pd

        df = pd.DataFrame({"threads": self.threads, "throughput": self.throughput})
        # Positional: a header label of "threads" must not replace the first column.
        df.columns = ["threads", self.label]
        return df


def _is_number(raw: str) -> bool:
    try:
        float(raw)
    except ValueError:
        return False
    return True


def _split_row(raw: str) -> list[str]:
    return [c.strip() for c in raw.split(",")]


def _parse_threads(raw: str, *, path: Path, line: int) -> int:
    try:
        x = float(raw)
    except ValueError as e:
        raise BenchCsvError(f"invalid thread count {raw!r}", path=path, line=line) from e
    if not math.isfinite(x) or abs(x - round(x)) > 1e-9:
        raise BenchCsvError(f"thread count is not an integer: {raw!r}", path=path, line=line)
    n = int(round(x))
    if n < 1:
        raise BenchCsvError(f"thread count must be >= 1 (got {n})", path=path, line=line)
    return n


def _parse_throughput(raw: str, *, path: Path, line: int) -> float:
    try:
        x = float(raw)
    except ValueError as e:
        raise BenchCsvError(f"invalid throughput {raw!r}", path=path, line=line) from e
    if not math.isfinite(x) or x < 0.0:
        raise BenchCsvError(f"throughput must be finite and >= 0 (got {raw!r})", path=path, line=line)
    return x


def read_series(path: Union[str, Path], *, default_label: Optional[str] = None) -> SeriesData:
    """
    Read one benchmark series.

    The first column is the sender thread count, the second the throughput in
    messages/millisecond. A leading non-numeric row is a header; its second
    field becomes the legend label. Without a header the label falls back to
    `default_label`, then to the file name.
    """
    path = Path(path)
    if not path.exists():
        raise BenchCsvError("missing input file", path=path)
    if not path.is_file():
        raise BenchCsvError("not a regular file", path=path)

    lines = path.read_text(encoding="utf-8", errors="replace").splitlines()

    label: Optional[str] = None
    has_header = False
    threads: list[int] = []
    tput: list[float] = []
    for lineno, raw in enumerate(lines, start=1):
        if not raw.strip():
            continue
        cols = _split_row(raw)
        if not has_header and not threads and not _is_number(cols[0]):
            has_header = True
            if len(cols) >= 2 and cols[1]:
                label = cols[1]
            continue
        if len(cols) < 2:
            raise BenchCsvError(f"expected at least 2 columns, got {len(cols)}: {raw!r}", path=path, line=lineno)
        threads.append(_parse_threads(cols[0], path=path, line=lineno))
        tput.append(_parse_throughput(cols[1], path=path, line=lineno))

    if not threads:
        raise BenchCsvError("no data rows", path=path)

    if label is None:
        label = default_label if default_label else path.stem

    return SeriesData(
        path=path,
        label=label,
        threads=np.asarray(threads, dtype=int),
        throughput=np.asarray(tput, dtype=float),
        has_header=has_header,
    )


def write_series(path: Union[str, Path], label: str, records: Iterable[tuple[int, float]]) -> Path:
    path = Path(path)
    out = [f"threads,{label}"]
    for threads, value in records:
        out.append(f"{int(threads)},{float(value):.12g}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(out) + "\n", encoding="utf-8")
    return path
