"""Tests for calibench.rank — overlap-aware ranking."""

from __future__ import annotations

import math
import unittest

from bench_test_helpers import make_result

from calibench.rank import (
    group_by_params,
    intervals_overlap,
    params_key,
    rank_group,
    rank_results,
)


class TestIntervalsOverlap(unittest.TestCase):
    def test_disjoint(self) -> None:
        a = make_result("a", 1.5, ci=(1.0, 2.0))
        b = make_result("b", 3.5, ci=(3.0, 4.0))
        self.assertFalse(intervals_overlap(a, b))
        self.assertFalse(intervals_overlap(b, a))

    def test_touching_counts_as_overlap(self) -> None:
        a = make_result("a", 1.5, ci=(1.0, 2.0))
        b = make_result("b", 2.5, ci=(2.0, 3.0))
        self.assertTrue(intervals_overlap(a, b))

    def test_nested(self) -> None:
        a = make_result("a", 5.0, ci=(1.0, 9.0))
        b = make_result("b", 5.0, ci=(4.0, 6.0))
        self.assertTrue(intervals_overlap(a, b))


class TestRankGroup(unittest.TestCase):
    def test_transitive_chain(self) -> None:
        results = [
            make_result("a", 1.5, ci=(1.0, 2.0)),
            make_result("b", 6.5, ci=(5.0, 8.0)),
            make_result("c", 7.5, ci=(6.0, 9.0)),
            make_result("d", 20.5, ci=(20.0, 21.0)),
        ]
        ranked = rank_group(results)
        self.assertEqual([r.name for r in ranked], ["a", "b", "c", "d"])
        self.assertEqual([r.rank_label for r in ranked], ["1", "≈2", "≈2", "4"])
        self.assertEqual(
            [r.is_approximate for r in ranked],
            [False, True, True, False],
        )

    def test_chain_links_disjoint_ends(self) -> None:
        # a and c do not overlap, but both overlap b.
        results = [
            make_result("a", 1.0, ci=(0.5, 1.5)),
            make_result("b", 1.8, ci=(1.4, 2.2)),
            make_result("c", 2.5, ci=(2.1, 3.0)),
        ]
        ranked = rank_group(results)
        self.assertEqual([r.rank for r in ranked], [1, 1, 1])
        self.assertTrue(all(r.is_approximate for r in ranked))

    def test_non_overlapping_ranks_are_distinct(self) -> None:
        results = [make_result(f"f{i}", float(i), ci=(i - 0.1, i + 0.1)) for i in range(1, 6)]
        ranked = rank_group(list(reversed(results)))
        self.assertEqual([r.rank for r in ranked], [1, 2, 3, 4, 5])
        self.assertFalse(any(r.is_approximate for r in ranked))

    def test_relative_to_fastest(self) -> None:
        ranked = rank_group(
            [
                make_result("slow", 3.0, ci=(2.9, 3.1)),
                make_result("fast", 1.0, ci=(0.9, 1.1)),
            ]
        )
        self.assertEqual(ranked[0].name, "fast")
        self.assertEqual(ranked[0].relative, 1.0)
        self.assertAlmostEqual(ranked[1].relative, 3.0)

    def test_relative_to_flagged_baseline(self) -> None:
        ranked = rank_group(
            [
                make_result("fast", 1.0, ci=(0.9, 1.1)),
                make_result("base", 2.0, ci=(1.9, 2.1), baseline=True),
                make_result("slow", 4.0, ci=(3.9, 4.1)),
            ]
        )
        by_name = {r.name: r for r in ranked}
        self.assertEqual(by_name["base"].relative, 1.0)
        self.assertAlmostEqual(by_name["fast"].relative, 0.5)
        self.assertAlmostEqual(by_name["slow"].relative, 2.0)
        self.assertEqual(by_name["fast"].rank, 1)

    def test_zero_baseline_median(self) -> None:
        ranked = rank_group(
            [
                make_result("zero", 0.0, ci=(0.0, 0.0), unit="kb"),
                make_result("also_zero", 0.0, ci=(0.0, 0.0), unit="kb"),
                make_result("some", 4.0, ci=(3.0, 5.0), unit="kb"),
            ]
        )
        by_name = {r.name: r for r in ranked}
        self.assertEqual(by_name["zero"].relative, 1.0)
        self.assertEqual(by_name["also_zero"].relative, 1.0)
        self.assertTrue(math.isinf(by_name["some"].relative))

    def test_ties_broken_by_name(self) -> None:
        ranked = rank_group(
            [
                make_result("b", 1.0, ci=(1.0, 1.0)),
                make_result("a", 1.0, ci=(1.0, 1.0)),
            ]
        )
        self.assertEqual([r.name for r in ranked], ["a", "b"])
        self.assertEqual([r.rank_label for r in ranked], ["≈1", "≈1"])

    def test_single_result(self) -> None:
        ranked = rank_group([make_result("only", 1.0)])
        self.assertEqual(ranked[0].rank, 1)
        self.assertFalse(ranked[0].is_approximate)
        self.assertEqual(ranked[0].relative, 1.0)

    def test_empty_raises(self) -> None:
        with self.assertRaisesRegex(ValueError, "'results' is empty."):
            rank_group([])

    def test_multiple_baselines_raise(self) -> None:
        with self.assertRaisesRegex(ValueError, "Only one baseline"):
            rank_group(
                [
                    make_result("a", 1.0, baseline=True),
                    make_result("b", 2.0, baseline=True),
                ]
            )


class TestGrouping(unittest.TestCase):
    def test_params_key_ignores_order(self) -> None:
        self.assertEqual(params_key({"n": 1, "flag": True}), params_key({"flag": True, "n": 1}))

    def test_params_key_distinguishes_types(self) -> None:
        self.assertNotEqual(params_key({"n": 1}), params_key({"n": True}))
        self.assertNotEqual(params_key({"n": 1}), params_key({"n": "1"}))

    def test_group_by_params_keeps_first_seen_order(self) -> None:
        results = [
            make_result("a", 1.0, params={"n": 2}),
            make_result("a", 1.0, params={"n": 1}),
            make_result("b", 1.0, params={"n": 2}),
        ]
        groups = list(group_by_params(results).values())
        self.assertEqual(len(groups), 2)
        self.assertEqual([r.params["n"] for r in groups[0]], [2, 2])


class TestRankResults(unittest.TestCase):
    def test_groups_ranked_independently(self) -> None:
        results = [
            make_result("a", 1.0, ci=(0.9, 1.1), params={"n": 10}),
            make_result("b", 5.0, ci=(4.9, 5.1), params={"n": 10}),
            make_result("a", 50.0, ci=(49.0, 51.0), params={"n": 100}),
            make_result("b", 10.0, ci=(9.9, 10.1), params={"n": 100}),
        ]
        ranked = rank_results(results)
        self.assertEqual(
            [(r.params["n"], r.name, r.rank) for r in ranked],
            [(10, "a", 1), (10, "b", 2), (100, "b", 1), (100, "a", 2)],
        )
        self.assertAlmostEqual(ranked[3].relative, 5.0)

    def test_empty_raises(self) -> None:
        with self.assertRaisesRegex(ValueError, "'results' is empty."):
            rank_results([])


if __name__ == "__main__":
    unittest.main()
