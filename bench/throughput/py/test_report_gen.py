from __future__ import annotations

import contextlib
import io
import sys
import tempfile
import unittest
from pathlib import Path

# Allow running as: python3 -m unittest bench/throughput/py/test_report_gen.py
_THIS_DIR = Path(__file__).resolve().parent
if str(_THIS_DIR) not in sys.path:
    sys.path.insert(0, str(_THIS_DIR))

from bench_csv import write_series  # noqa: E402
from chart_config import DEFAULT_CHARTS  # noqa: E402
from generate_report import ReportError, generate_report, main as report_main  # noqa: E402


def _build_case(base: Path, *, with_rendezvous: bool = True) -> Path:
    data_dir = base / "data"
    runs = [1, 1, 2, 2, 4, 4]
    write_series(data_dir / "unbounded" / "alt", "alt", [(t, 1000.0 * t + i) for i, t in enumerate(runs)])
    write_series(data_dir / "unbounded" / "std", "std", [(t, 500.0 * t) for t in runs])
    if with_rendezvous:
        write_series(data_dir / "rendezvous" / "alt", "alt", [(t, 100.0) for t in runs])
        write_series(data_dir / "rendezvous" / "std", "std", [(t, 50.0) for t in runs[:4]])
    return data_dir


class TestGenerateReport(unittest.TestCase):
    def test_report_contents_and_artifacts(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            data_dir = _build_case(Path(td))
            art = generate_report(data_dir)

            self.assertEqual(art.report_dir, data_dir / "report")
            self.assertTrue(art.markdown_path.is_file())
            self.assertEqual([p.name for p in art.plot_paths], ["unbounded.svg", "rendezvous.svg"])
            for p in art.plot_paths:
                self.assertTrue(p.is_file())
                self.assertEqual(p.parent, art.report_dir / "plots")

            md = art.markdown_path.read_text(encoding="utf-8")
            self.assertIn("# Channel throughput report", md)
            self.assertIn("## unbounded", md)
            self.assertIn("## rendezvous", md)
            self.assertIn("![unbounded.svg](plots/unbounded.svg)", md)
            self.assertIn("### Median ratio alt/std", md)
            self.assertIn("| 1 | 1000.5 | 500.0 | 2.001 |", md)
            self.assertIn("- Generated: ", md)
            self.assertIn("- All runs: min 50.0, p50 50.0, p95 50.0, max 50.0", md)

            alt_unbounded = art.stats["unbounded"]["alt"]
            self.assertEqual([s.threads for s in alt_unbounded], [1, 2, 4])
            self.assertEqual([s.n for s in art.stats["rendezvous"]["std"]], [2, 2])

    def test_custom_report_dir_and_chart_subset(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            data_dir = _build_case(Path(td), with_rendezvous=False)
            out = Path(td) / "r"
            charts = tuple(c for c in DEFAULT_CHARTS if c.name == "unbounded")
            art = generate_report(data_dir, report_dir=out, charts=charts, median_line=True)
            self.assertEqual(art.markdown_path, out / "report.md")
            md = art.markdown_path.read_text(encoding="utf-8")
            self.assertNotIn("## rendezvous", md)
            svg = (out / "plots" / "unbounded.svg").read_text(encoding="utf-8")
            self.assertIn('id="median-alt"', svg)

    def test_without_timestamp_is_byte_identical(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            data_dir = _build_case(Path(td))
            out = Path(td) / "r"
            first = generate_report(data_dir, report_dir=out, timestamp=False).markdown_path.read_bytes()
            second = generate_report(data_dir, report_dir=out, timestamp=False).markdown_path.read_bytes()
            self.assertEqual(first, second)
            self.assertNotIn(b"Generated:", first)

    def test_report_dir_that_is_a_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            data_dir = _build_case(Path(td))
            blocker = Path(td) / "r"
            blocker.write_text("", encoding="utf-8")
            with self.assertRaises(ReportError):
                generate_report(data_dir, report_dir=blocker)

    def test_not_a_directory(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(ReportError):
                generate_report(Path(td) / "missing")


class TestReportCli(unittest.TestCase):
    def test_main_success(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            data_dir = _build_case(Path(td))
            buf = io.StringIO()
            with contextlib.redirect_stdout(buf):
                rc = report_main([str(data_dir), "--output-dir", str(Path(td) / "rep"), "--no-timestamp"])
            self.assertEqual(rc, 0)
            self.assertIn("report_md:", buf.getvalue())
            md = (Path(td) / "rep" / "report.md").read_text(encoding="utf-8")
            self.assertNotIn("Generated:", md)

    def test_main_missing_series(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            data_dir = _build_case(Path(td), with_rendezvous=False)
            err = io.StringIO()
            with contextlib.redirect_stderr(err):
                rc = report_main([str(data_dir)])
            self.assertEqual(rc, 2)
            self.assertIn("missing input file", err.getvalue())

    def test_main_not_a_directory(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with contextlib.redirect_stderr(io.StringIO()):
                rc = report_main([str(Path(td) / "missing")])
            self.assertEqual(rc, 2)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
