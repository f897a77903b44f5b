#!/usr/bin/env python3
"""
Capped, damped semi-implicit Euler integrator.

Per body and per step:
1) clamp the acceleration magnitude to max_acceleration_magnitude (direction kept)
2) velocity += acceleration * dt
3) velocity *= damping_factor
4) position += velocity * dt

The position update uses the new velocity. The cap and the damping trade
physical accuracy for smooth, bounded motion on screen; both are explicit
parameters so the deviation is visible and adjustable.
"""
from typing import Iterable

from .data_models import Body, SimulationParameters
from .vector_utils import vec_add, vec_clamp_len, vec_scale


def integrate_body(body: Body, params: SimulationParameters) -> None:
    dt = params.time_step
    body.acceleration = vec_clamp_len(body.acceleration, params.max_acceleration_magnitude)
    velocity = vec_add(body.velocity, vec_scale(body.acceleration, dt))
    body.velocity = vec_scale(velocity, params.damping_factor)
    body.position = vec_add(body.position, vec_scale(body.velocity, dt))


def integrate(bodies: Iterable[Body], params: SimulationParameters) -> None:
    for body in bodies:
        integrate_body(body, params)
