"""Tests for calibench.export — CSV and Markdown output."""

from __future__ import annotations

import csv
import io
import unittest

from bench_test_helpers import make_result

from calibench.export import CSV_COLUMNS, export_csv, export_markdown


def parse_csv(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


class TestExportCsv(unittest.TestCase):
    def test_header_and_rows(self) -> None:
        rows = parse_csv(export_csv([make_result("a", 0.5, rank=1), make_result("b", 1.0, rank=2)]))
        self.assertEqual(rows[0], CSV_COLUMNS)
        self.assertEqual(len(rows), 3)
        self.assertEqual(rows[1][0], "a")
        self.assertEqual(rows[1][CSV_COLUMNS.index("median")], "0.5")
        self.assertEqual(rows[2][CSV_COLUMNS.index("rank")], "2")

    def test_param_columns_sorted_after_name(self) -> None:
        results = [
            make_result("a", 1.0, params={"size": 10, "flag": True}),
            make_result("a", 2.0, params={"size": 20, "flag": False}),
        ]
        rows = parse_csv(export_csv(results))
        self.assertEqual(rows[0][:3], ["name", "flag", "size"])
        self.assertEqual(rows[1][:3], ["a", "true", "10"])
        self.assertEqual(rows[2][:3], ["a", "false", "20"])

    def test_special_characters_quoted(self) -> None:
        output = export_csv([make_result("has,comma", 1.0), make_result('has"quote', 2.0)])
        self.assertIn('"has,comma"', output)
        self.assertIn('"has""quote"', output)
        rows = parse_csv(output)
        self.assertEqual(rows[1][0], "has,comma")
        self.assertEqual(rows[2][0], 'has"quote')

    def test_memory_has_no_ops(self) -> None:
        rows = parse_csv(export_csv([make_result("m", 4.0, unit="kb")]))
        self.assertEqual(rows[1][CSV_COLUMNS.index("ops")], "")
        self.assertEqual(rows[1][CSV_COLUMNS.index("unit")], "kb")


class TestExportMarkdown(unittest.TestCase):
    def test_single_table(self) -> None:
        output = export_markdown(
            [make_result("slow", 0.002, rank=2, relative=2.0), make_result("fast", 0.001, rank=1)]
        )
        lines = output.splitlines()
        self.assertEqual(lines[0], "| Name | Rank | Ratio | Median | CI | Ops | Rounds |")
        self.assertTrue(lines[2].startswith("| fast | 1 | 1.00x | 1ms |"))
        self.assertTrue(lines[3].startswith("| slow | 2 | 2.00x | 2ms |"))
        self.assertNotIn("###", output)

    def test_table_per_params_group(self) -> None:
        results = [
            make_result("a", 1.0, rank=1, params={"n": 10}),
            make_result("a", 2.0, rank=1, params={"n": 20}),
        ]
        output = export_markdown(results)
        self.assertIn("### n=10", output)
        self.assertIn("### n=20", output)
        self.assertEqual(output.count("| Name |"), 2)

    def test_pipe_escaped(self) -> None:
        output = export_markdown([make_result("a|b", 1.0, rank=1)])
        self.assertIn("| a\\|b |", output)

    def test_approximate_rank_label(self) -> None:
        output = export_markdown([make_result("a", 1.0, rank=1, is_approximate=True)])
        self.assertIn("| a | ≈1 |", output)


if __name__ == "__main__":
    unittest.main()
