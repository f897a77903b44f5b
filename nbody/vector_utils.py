#!/usr/bin/env python3
"""
Vector helper functions for 2D/3D operations.

Vectors are plain tuples of floats. Every function returns a new tuple, so a
vector handed to another thread can never change under it. The functions work
on any dimension but both operands must agree.
"""
import math
from typing import Tuple

from .errors import DegenerateVectorError

Vector = Tuple[float, ...]


def clamp(x: float, a: float, b: float) -> float:
    """Clamp x to the inclusive range [a, b]."""
    return max(a, min(b, x))


def _check_dims(a: Vector, b: Vector) -> None:
    if len(a) != len(b):
        raise ValueError(f"dimension mismatch: {len(a)} != {len(b)}")


def vec_zero(dim: int) -> Vector:
    return (0.0,) * dim


def vec_add(a: Vector, b: Vector) -> Vector:
    _check_dims(a, b)
    return tuple(x + y for x, y in zip(a, b))


def vec_sub(a: Vector, b: Vector) -> Vector:
    _check_dims(a, b)
    return tuple(x - y for x, y in zip(a, b))


def vec_scale(a: Vector, s: float) -> Vector:
    return tuple(x * s for x in a)


def vec_len(a: Vector) -> float:
    return math.sqrt(sum(x * x for x in a))


def vec_norm(a: Vector) -> Vector:
    """
    Unit vector pointing along ``a``.

    The zero vector has no direction, so it raises DegenerateVectorError
    rather than returning a made-up axis.
    """
    l = vec_len(a)
    if l == 0:
        raise DegenerateVectorError("cannot normalize the zero vector")
    return tuple(x / l for x in a)


def vec_dot(a: Vector, b: Vector) -> float:
    _check_dims(a, b)
    return sum(x * y for x, y in zip(a, b))


def vec_is_finite(a: Vector) -> bool:
    return all(math.isfinite(x) for x in a)


def vec_clamp_len(a: Vector, limit: float) -> Vector:
    """Scale ``a`` down to length ``limit`` if it is longer; direction is kept."""
    l = vec_len(a)
    if l <= limit:
        return a
    return vec_scale(a, limit / l)
