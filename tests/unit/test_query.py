from __future__ import annotations

import pytest

from captchakit.core.utils import generate_query, is_mapping_arg

pytestmark = [pytest.mark.unit]


def test_pairs_joined_in_insertion_order():
    assert generate_query({"sitekey": "abc", "hl": "de"}) == "sitekey=abc&hl=de"


def test_none_values_are_omitted():
    assert generate_query({"a": None, "b": "x", "c": None}) == "b=x"


def test_empty_and_missing_params():
    assert generate_query({}) == ""
    assert generate_query(None) == ""
    assert generate_query({"only": None}) == ""


def test_booleans_and_numbers():
    assert generate_query({"sentry": False, "custom": True, "n": 3}) == "sentry=false&custom=true&n=3"


def test_values_are_percent_encoded():
    assert generate_query({"host": "a b&c=d"}) == "host=a%20b%26c%3Dd"
    assert generate_query({"endpoint": "https://x.test/p"}) == "endpoint=https%3A%2F%2Fx.test%2Fp"


def test_mapping_argument_guard():
    assert is_mapping_arg(None)
    assert is_mapping_arg({})
    assert is_mapping_arg({"rqdata": "x"})
    assert not is_mapping_arg("string")
    assert not is_mapping_arg(42)
    assert not is_mapping_arg(["a"])
