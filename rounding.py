# -*- coding: utf-8 -*-
"""
rounding.py — half-up rounding shared by the estimator and the pricing engine.

Exact ties go up (0.125 -> 0.13, 2.5 -> 3), the way quotes were always rounded; the
builtin round() would send them to the even neighbour.
"""
from __future__ import annotations

import math


def round_half_up(value: float, ndigits: int = 0) -> float:
    """floor(value * 10**ndigits + 0.5) / 10**ndigits"""
    scale = 10 ** ndigits
    return math.floor(float(value) * scale + 0.5) / scale


def round_money(value: float) -> float:
    return round_half_up(value, 2)


def round_int(value: float) -> int:
    return int(round_half_up(value))
