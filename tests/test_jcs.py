import math
import random

import pytest

from zerotrace.signing.jcs import canonical_bytes, canonicalize


def test_object_key_ordering():
    obj = {"b": 1, "a": 2, "ä": 3}
    # UTF-8 byte order: 'a'(0x61) < 'b'(0x62) < 'ä'(0xc3 0xa4)
    assert canonicalize(obj) == '{"a":2,"b":1,"ä":3}'
    assert canonical_bytes(obj) == '{"a":2,"b":1,"ä":3}'.encode()


def test_string_escaping_control_chars():
    out = canonicalize({"k": 'line\nTAB\tQUOTE"BS\\'})
    assert out == '{"k":"line\\u000aTAB\\u0009QUOTE\\"BS\\\\"}'


def test_solidus_and_unicode_not_escaped():
    assert canonicalize("a/b é") == '"a/b é"'


def test_scalars():
    assert canonicalize(None) == "null"
    assert canonicalize(True) == "true"
    assert canonicalize(False) == "false"
    assert canonicalize({"serialNumber": None}) == '{"serialNumber":null}'


def test_number_forms():
    cases = [
        (0, "0"),
        (-1, "-1"),
        (1.0, "1"),
        (1.50, "1.5"),
        (-0.0, "0"),
        (0.1, "0.1"),
        (1000000.0, "1000000"),
        (1e21, "1e21"),
        (1e-7, "1e-7"),
        (1700000000000, "1700000000000"),
    ]
    for n, expect in cases:
        assert canonicalize(n) == expect


def test_array_order_preserved_and_nested_sorted():
    obj = {"z": [3, 1, 2], "a": {"y": "s", "b": [True, None]}}
    assert canonicalize(obj) == '{"a":{"b":[true,null],"y":"s"},"z":[3,1,2]}'
    assert canonicalize((1, 2)) == "[1,2]"


def test_insertion_order_independence():
    base = {f"k{i}": {"v": i, "w": [i, str(i)]} for i in range(60)}
    items = list(base.items())
    first = canonicalize(base)
    for _ in range(20):
        random.shuffle(items)
        assert canonicalize(dict(items)) == first


def test_reject_nan_and_infinity():
    for bad in [math.nan, math.inf, -math.inf]:
        with pytest.raises(ValueError):
            canonicalize({"x": bad})


def test_reject_unsupported_types():
    with pytest.raises(TypeError):
        canonicalize({"x": object()})
    with pytest.raises(TypeError):
        canonicalize({1: "int key"})
    with pytest.raises(TypeError):
        canonicalize({"x": {1, 2}})
