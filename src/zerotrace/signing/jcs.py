"""Deterministic JSON rendering of certificate payloads.

The output is the exact byte input to signing and verification, so it has to
be reproducible from any dict with the same members regardless of insertion
order:
  * Object members sorted by the UTF-8 bytes of their names.
  * No insignificant whitespace.
  * Strings escape quotation mark, reverse solidus and U+0000..U+001F (as
    ``\\u00xx``); everything else, including non-ASCII, is emitted verbatim.
  * Integers in plain decimal; floats in their shortest round-trip form with
    no trailing ``.0``. NaN/Infinity raise ValueError.

Anything that is not None/bool/int/float/str/list/tuple/dict raises TypeError.
Those are caller contract violations and are not meant to be caught.
"""
from __future__ import annotations

import math
from typing import Any


def _quote(s: str) -> str:
    out = ['"']
    for ch in s:
        if ch == '"':
            out.append('\\"')
        elif ch == "\\":
            out.append("\\\\")
        elif ord(ch) < 0x20:
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


def _number(n: int | float) -> str:
    if isinstance(n, int):
        return str(n)
    if math.isnan(n) or math.isinf(n):
        raise ValueError("NaN/Infinity cannot be canonicalized")
    if n == 0:
        return "0"  # also folds -0.0
    if n.is_integer() and abs(n) < 1e21:
        return str(int(n))
    s = repr(n)
    if "e" in s:
        mantissa, exp = s.split("e")
        s = f"{mantissa}e{int(exp)}"
    return s


def _render(obj: Any) -> str:
    if obj is None:
        return "null"
    if obj is True:
        return "true"
    if obj is False:
        return "false"
    if isinstance(obj, (int, float)):
        return _number(obj)
    if isinstance(obj, str):
        return _quote(obj)
    if isinstance(obj, (list, tuple)):
        return "[" + ",".join(_render(v) for v in obj) + "]"
    if isinstance(obj, dict):
        for k in obj:
            if not isinstance(k, str):
                raise TypeError(f"object keys must be str, got {type(k)!r}")
        keys = sorted(obj, key=lambda k: k.encode("utf-8"))
        return "{" + ",".join(_quote(k) + ":" + _render(obj[k]) for k in keys) + "}"
    raise TypeError(f"cannot canonicalize {type(obj)!r}")


def canonicalize(obj: Any) -> str:
    return _render(obj)


def canonical_bytes(obj: Any) -> bytes:
    return _render(obj).encode("utf-8")


__all__ = ["canonicalize", "canonical_bytes"]
