#!/usr/bin/env python3
"""
Data models for the N-body simulator.

This module defines the mutable Body owned by the simulation, the validated
SimulationParameters, and the immutable BodyState/Snapshot pair handed to the
renderer.

Ownership
- Body instances are mutated only by the simulation loop thread.
- Snapshot and BodyState are frozen; once published they are safe to read from
  any thread without a lock.
"""
import math
from collections import deque
from dataclasses import dataclass, field, fields, replace
from typing import Deque, Optional, Tuple

from .constants import (
    DEFAULT_DAMPING,
    DEFAULT_G,
    DEFAULT_MAX_ACCELERATION,
    DEFAULT_SOFTENING,
    DEFAULT_TIME_STEP,
    DEFAULT_TRAIL_LENGTH,
    MAX_TRAIL_LENGTH,
)
from .errors import InvalidBodyError, InvalidParameterError
from .vector_utils import Vector, vec_is_finite, vec_zero

SUPPORTED_DIMENSIONS = (2, 3)


def coerce_vector(value, what: str) -> Vector:
    if isinstance(value, (str, bytes)):
        raise InvalidBodyError(f"{what} must be a sequence of numbers, got {value!r}")
    try:
        vec = tuple(float(c) for c in value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidBodyError(f"{what} must be a sequence of numbers, got {value!r}") from None
    if len(vec) not in SUPPORTED_DIMENSIONS:
        raise InvalidBodyError(f"{what} must have 2 or 3 components, got {len(vec)}")
    if not vec_is_finite(vec):
        raise InvalidBodyError(f"{what} must be finite, got {vec}")
    return vec


def validate_mass(mass) -> float:
    """Return ``mass`` as a float, or raise InvalidBodyError if it is not > 0."""
    if isinstance(mass, bool):
        raise InvalidBodyError(f"mass must be a number, got {mass!r}")
    try:
        m = float(mass)
    except (TypeError, ValueError, OverflowError):
        raise InvalidBodyError(f"mass must be a number, got {mass!r}") from None
    if not math.isfinite(m) or m <= 0:
        raise InvalidBodyError(f"mass must be positive and finite, got {mass!r}")
    return m


@dataclass
class Body:
    """
    One simulated point mass.

    Fields:
    - id: Stable identifier assigned by the Simulation
    - mass: Strictly positive mass
    - position: Current location (2 or 3 components)
    - velocity: Current rate of change of position
    - acceleration: Net acceleration accumulated during the current step
    - name: Display label
    - trail: Past positions, newest last
    """
    id: int
    mass: float
    position: Vector
    velocity: Vector
    acceleration: Optional[Vector] = None
    name: str = ""
    trail: Deque[Vector] = field(default_factory=lambda: deque(maxlen=DEFAULT_TRAIL_LENGTH))

    def __post_init__(self):
        self.mass = validate_mass(self.mass)
        self.position = coerce_vector(self.position, "position")
        self.velocity = coerce_vector(self.velocity, "velocity")
        if len(self.velocity) != len(self.position):
            raise InvalidBodyError("position and velocity must have the same dimension")
        if self.acceleration is None:
            self.acceleration = vec_zero(len(self.position))
        if not self.name:
            self.name = f"Body {self.id}"

    @property
    def dimensions(self) -> int:
        return len(self.position)

    def add_trail_point(self) -> None:
        """Append the current position to the trail."""
        self.trail.append(self.position)

    def is_finite(self) -> bool:
        return (
            vec_is_finite(self.position)
            and vec_is_finite(self.velocity)
            and vec_is_finite(self.acceleration)
        )

    def state(self) -> "BodyState":
        return BodyState(
            id=self.id,
            name=self.name,
            mass=self.mass,
            position=self.position,
            velocity=self.velocity,
            acceleration=self.acceleration,
            trail=tuple(self.trail),
        )


@dataclass(frozen=True)
class SimulationParameters:
    """
    Global knobs of the simulation. Instances are immutable; use
    ``with_value`` to obtain an edited, validated copy.

    escape_radius of None disables removal of far-away bodies.
    """
    gravitational_constant: float = DEFAULT_G
    time_step: float = DEFAULT_TIME_STEP
    damping_factor: float = DEFAULT_DAMPING
    max_acceleration_magnitude: float = DEFAULT_MAX_ACCELERATION
    softening_radius: float = DEFAULT_SOFTENING
    escape_radius: Optional[float] = None
    trail_length: int = DEFAULT_TRAIL_LENGTH

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            object.__setattr__(self, f.name, _validate_parameter(f.name, value))

    @classmethod
    def names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def with_value(self, name: str, value) -> "SimulationParameters":
        if name not in self.names():
            raise InvalidParameterError(f"unknown parameter {name!r}")
        return replace(self, **{name: value})


def _as_number(name: str, value) -> float:
    if isinstance(value, bool):
        raise InvalidParameterError(f"{name} must be a number, got {value!r}")
    try:
        v = float(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidParameterError(f"{name} must be a number, got {value!r}") from None
    if math.isnan(v):
        raise InvalidParameterError(f"{name} must not be NaN")
    return v


def _validate_parameter(name: str, value):
    if name == "escape_radius":
        if value is None:
            return None
        v = _as_number(name, value)
        if v == 0:
            return None
        if v < 0 or not math.isfinite(v):
            raise InvalidParameterError(f"escape_radius must be positive or 0 to disable, got {value!r}")
        return v

    if name == "trail_length":
        v = _as_number(name, value)
        if not math.isfinite(v) or v < 0 or v != int(v):
            raise InvalidParameterError(f"trail_length must be a non-negative integer, got {value!r}")
        if v > MAX_TRAIL_LENGTH:
            raise InvalidParameterError(f"trail_length must be at most {MAX_TRAIL_LENGTH}, got {value!r}")
        return int(v)

    v = _as_number(name, value)
    if name == "damping_factor":
        if not 0.0 <= v <= 1.0:
            raise InvalidParameterError(f"damping_factor must be within [0, 1], got {value!r}")
    elif name == "max_acceleration_magnitude":
        # inf is allowed and disables the cap
        if v <= 0:
            raise InvalidParameterError(f"max_acceleration_magnitude must be positive, got {value!r}")
    elif not math.isfinite(v) or v <= 0:
        raise InvalidParameterError(f"{name} must be positive and finite, got {value!r}")
    return v


@dataclass(frozen=True)
class BodyState:
    """Read-only copy of one body, as published in a Snapshot."""
    id: int
    name: str
    mass: float
    position: Vector
    velocity: Vector
    acceleration: Vector
    trail: Tuple[Vector, ...] = ()


@dataclass(frozen=True)
class Snapshot:
    """
    Immutable view of the whole simulation at a step boundary.

    fault holds the invariant violation message once the stream has been
    halted; the bodies are then the last good state.
    """
    time: float
    step_count: int
    bodies: Tuple[BodyState, ...]
    parameters: SimulationParameters
    running: bool
    fault: Optional[str] = None

    def find(self, body_id: int) -> Optional[BodyState]:
        for b in self.bodies:
            if b.id == body_id:
                return b
        return None
