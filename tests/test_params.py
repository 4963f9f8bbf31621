"""Tests for calibench.params — parameter validation and expansion."""

from __future__ import annotations

import unittest

from calibench.config import ConfigError
from calibench.params import (
    MAX_PARAM_COMBINATIONS,
    expand_params,
    format_param_value,
    format_params,
    validate_params,
)


class TestExpandParams(unittest.TestCase):
    def test_cartesian_product(self) -> None:
        combos = expand_params({"n": [1, 2], "flag": [True, False]})
        self.assertEqual(len(combos), 4)
        self.assertEqual(
            combos,
            [
                {"flag": True, "n": 1},
                {"flag": True, "n": 2},
                {"flag": False, "n": 1},
                {"flag": False, "n": 2},
            ],
        )

    def test_combinations_are_distinct_mappings(self) -> None:
        combos = expand_params({"n": [1, 2], "flag": [True, False]})
        keys = {tuple(sorted(c.items())) for c in combos}
        self.assertEqual(len(keys), 4)
        combos[0]["n"] = 99
        self.assertNotEqual(combos[1]["n"], 99)

    def test_names_iterated_in_sorted_order(self) -> None:
        combos = expand_params({"b": ["x", "y"], "a": [1, 2]})
        self.assertEqual([c["a"] for c in combos], [1, 1, 2, 2])
        self.assertEqual([c["b"] for c in combos], ["x", "y", "x", "y"])

    def test_empty_params_single_combination(self) -> None:
        self.assertEqual(expand_params({}), [{}])
        self.assertEqual(expand_params(None), [{}])


class TestValidateParams(unittest.TestCase):
    def test_valid_params_normalized_to_lists(self) -> None:
        self.assertEqual(validate_params({"n": (1, 2)}), {"n": [1, 2]})

    def test_not_a_mapping(self) -> None:
        with self.assertRaisesRegex(ConfigError, "'params' must be a mapping"):
            validate_params([1, 2])

    def test_non_string_name(self) -> None:
        with self.assertRaisesRegex(ConfigError, "params key must be a string, got int"):
            validate_params({1: [1]})

    def test_values_must_be_list(self) -> None:
        with self.assertRaisesRegex(ConfigError, r"params\['n'\] must be a list, got int"):
            validate_params({"n": 5})

    def test_empty_list(self) -> None:
        with self.assertRaisesRegex(ConfigError, r"params\['n'\] must not be empty"):
            validate_params({"n": []})

    def test_non_scalar_value(self) -> None:
        with self.assertRaisesRegex(ConfigError, r"params\['n'\]\[1\] must be str, int"):
            validate_params({"n": [1, [2]]})

    def test_error_field(self) -> None:
        with self.assertRaises(ConfigError) as cm:
            validate_params({"size": []})
        self.assertEqual(cm.exception.field, "params['size']")

    def test_too_many_combinations(self) -> None:
        params = {"a": list(range(11)), "b": list(range(10))}
        with self.assertRaisesRegex(ConfigError, "Too many parameter combinations"):
            validate_params(params)

    def test_limit_is_inclusive(self) -> None:
        params = {"a": list(range(10)), "b": list(range(10))}
        self.assertEqual(len(expand_params(validate_params(params))), MAX_PARAM_COMBINATIONS)


class TestFormatParams(unittest.TestCase):
    def test_bools_lowercase(self) -> None:
        self.assertEqual(format_param_value(True), "true")
        self.assertEqual(format_param_value(False), "false")
        self.assertEqual(format_param_value(1.5), "1.5")

    def test_sorted_names(self) -> None:
        self.assertEqual(format_params({"n": 1, "flag": True}), "flag=true, n=1")

    def test_empty(self) -> None:
        self.assertEqual(format_params({}), "")


if __name__ == "__main__":
    unittest.main()
