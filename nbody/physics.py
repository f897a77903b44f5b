#!/usr/bin/env python3
"""
Force model for the N-body simulator.

Responsibilities
- Accumulate pairwise gravitational accelerations into each Body, using a
  minimum separation (softening radius) so close encounters stay finite.
- Provide small helpers for orbital set-ups and diagnostics (circular and
  escape velocity, momentum, kinetic energy, centre of mass).

Numerical notes
- Softening: the separation is replaced by max(|d|, softening_radius) before
  computing G*m/r^2. Unlike Plummer softening the force is unchanged beyond the
  radius, and inside it the magnitude is held at its value at the radius.
- Newton's third law: each unordered pair is evaluated once and the two
  contributions are added to both bodies, so they are exactly antiparallel.
- Complexity: O(N^2) per step (direct summation). Intended N is tens of bodies.
- Contributions are accelerations, not forces: the contribution to body a only
  uses the mass of b, and vice versa.
"""

import math
from typing import Iterable, List, Sequence

from .data_models import Body, SimulationParameters
from .vector_utils import Vector, vec_add, vec_dot, vec_len, vec_scale, vec_sub, vec_zero


def accumulate_pair(a: Body, b: Body, gravitational_constant: float, softening_radius: float) -> None:
    """
    Add the mutual gravitational acceleration of ``a`` and ``b`` to both bodies.

    Exactly coincident bodies have no direction between them and contribute
    nothing to each other.
    """
    d = vec_sub(b.position, a.position)
    dist = vec_len(d)
    if dist == 0.0:
        return
    r = max(dist, softening_radius)
    # unit(d) / r^2, shared by both contributions
    k = 1.0 / (r * r * dist)
    a.acceleration = vec_add(a.acceleration, vec_scale(d, gravitational_constant * b.mass * k))
    b.acceleration = vec_add(b.acceleration, vec_scale(d, -gravitational_constant * a.mass * k))


def reset_accelerations(bodies: Iterable[Body]) -> None:
    for body in bodies:
        body.acceleration = vec_zero(body.dimensions)


def compute_accelerations(bodies: Sequence[Body], params: SimulationParameters) -> None:
    """
    Reset and recompute the net acceleration of every body.

    For each body i this leaves

        a_i = sum_j G * m_j * unit(x_j - x_i) / max(|x_j - x_i|, eps)^2

    in ``bodies[i].acceleration``. Self-interaction is skipped.

    Args:
        bodies: Bodies to update in place.
        params: Supplies G and the softening radius.
    """
    reset_accelerations(bodies)
    n = len(bodies)
    g = params.gravitational_constant
    eps = params.softening_radius
    for i in range(n - 1):
        for j in range(i + 1, n):
            accumulate_pair(bodies[i], bodies[j], g, eps)


def circular_orbit_velocity(gravitational_constant: float, central_mass: float, orbital_radius: float) -> float:
    """
    Speed for a circular orbit of radius ``orbital_radius`` around ``central_mass``.

    Gravity supplies the centripetal force: G*M/r^2 = v^2/r, so v = sqrt(G*M/r).
    """
    if orbital_radius <= 0:
        return 0.0
    return math.sqrt(gravitational_constant * central_mass / orbital_radius)


def escape_velocity(gravitational_constant: float, total_mass: float, separation: float) -> float:
    """Minimum speed to escape ``total_mass`` from ``separation``: sqrt(2*G*M/r)."""
    if separation <= 0 or total_mass <= 0:
        return 0.0
    return math.sqrt(2.0 * gravitational_constant * total_mass / separation)


# Diagnostics below read only mass, position and velocity, so they accept
# published BodyState values as well as live bodies.

def total_momentum(bodies: Sequence[Body]) -> Vector:
    if not bodies:
        return ()
    p = vec_zero(len(bodies[0].position))
    for b in bodies:
        p = vec_add(p, vec_scale(b.velocity, b.mass))
    return p


def kinetic_energy(bodies: Iterable[Body]) -> float:
    return sum(0.5 * b.mass * vec_dot(b.velocity, b.velocity) for b in bodies)


def centre_of_mass(bodies: Sequence[Body]) -> Vector:
    if not bodies:
        return ()
    total = sum(b.mass for b in bodies)
    acc: List[float] = list(vec_zero(len(bodies[0].position)))
    for b in bodies:
        for k, x in enumerate(b.position):
            acc[k] += x * b.mass
    return tuple(x / total for x in acc)


def unbound_bodies(bodies: Sequence[Body], gravitational_constant: float) -> List[Body]:
    """
    Bodies moving faster than the escape velocity of the rest of the system,
    measured relative to the centre of mass. A single body is never unbound.
    """
    if len(bodies) < 2:
        return []
    total = sum(b.mass for b in bodies)
    com = centre_of_mass(bodies)
    com_velocity = vec_scale(total_momentum(bodies), 1.0 / total)
    out = []
    for b in bodies:
        speed = vec_len(vec_sub(b.velocity, com_velocity))
        limit = escape_velocity(gravitational_constant, total - b.mass, vec_len(vec_sub(b.position, com)))
        if limit > 0 and speed > limit:
            out.append(b)
    return out
