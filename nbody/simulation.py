#!/usr/bin/env python3
"""
Simulation state and the discrete step.

A Simulation owns the ordered body list (insertion order) and the current
SimulationParameters. It is not thread-safe on purpose: the simulation loop is
its only writer, and other threads only see the Snapshots the loop publishes.

One step:
1) reset every acceleration to zero
2) accumulate pairwise gravity (physics.compute_accelerations)
3) integrate every body (integrator.integrate)
4) verify all state is finite, otherwise halt with InternalInvariantViolation
5) drop bodies outside escape_radius, if that policy is enabled
6) record trail points and advance simulated time by time_step
"""
import itertools
import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from .data_models import Body, BodyState, SimulationParameters, Snapshot, validate_mass, coerce_vector
from .errors import InternalInvariantViolation, InvalidBodyError, UnknownBodyIdError
from .integrator import integrate
from .physics import compute_accelerations
from .vector_utils import Vector, vec_len

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepReport:
    """Outcome of one step: the new simulated time and bodies dropped by the escape policy."""
    time: float
    step_count: int
    removed: Tuple[BodyState, ...] = ()


class Simulation:
    """
    Owner of bodies and parameters.

    Args:
        bodies: Initial bodies. They are copied; ids are reassigned from 0.
        parameters: Initial parameters (defaults when omitted).
        start_paused: Start Idle instead of Running.
        dimensions: Vector dimension for an empty scene. Taken from the first
            body when bodies are given.
        respawn: Optional factory for a fresh set of initial bodies. When
            given, reset() draws new bodies from it instead of replaying the
            initial ones (used by randomly generated scenes).
    """

    def __init__(self, bodies: Sequence[Body] = (), parameters: Optional[SimulationParameters] = None,
                 start_paused: bool = True, dimensions: Optional[int] = None,
                 respawn: Optional[Callable[[], Sequence[Body]]] = None):
        self.parameters = parameters if parameters is not None else SimulationParameters()
        self.dimensions = dimensions or (bodies[0].dimensions if bodies else 2)
        self.running = not start_paused
        self.time = 0.0
        self.step_count = 0
        self.fault: Optional[str] = None
        self._bodies: List[Body] = []
        self._ids = itertools.count()

        self._initial_parameters = self.parameters
        self._respawn = respawn
        self._initial_bodies = [(b.position, b.velocity, b.mass, b.name) for b in bodies]
        for position, velocity, mass, name in self._initial_bodies:
            self.add_body(position, velocity, mass, name)

    # -----------------------
    # Queries
    # -----------------------

    @property
    def bodies(self) -> Tuple[Body, ...]:
        return tuple(self._bodies)

    def get_body(self, body_id: int) -> Body:
        for b in self._bodies:
            if b.id == body_id:
                return b
        raise UnknownBodyIdError(f"no body with id {body_id!r}")

    def snapshot(self) -> Snapshot:
        return Snapshot(
            time=self.time,
            step_count=self.step_count,
            bodies=tuple(b.state() for b in self._bodies),
            parameters=self.parameters,
            running=self.running,
            fault=self.fault,
        )

    # -----------------------
    # Run state
    # -----------------------

    def pause(self) -> None:
        self.running = False

    def resume(self) -> None:
        if self.fault is not None:
            raise InternalInvariantViolation(f"simulation halted, reset to continue: {self.fault}")
        self.running = True

    def toggle(self) -> bool:
        if self.running:
            self.pause()
        else:
            self.resume()
        return self.running

    # -----------------------
    # Structural commands
    # -----------------------

    def add_body(self, position: Vector, velocity: Vector, mass: float, name: Optional[str] = None) -> Body:
        body = Body(
            id=-1,
            mass=mass,
            position=position,
            velocity=velocity,
            name=name or "",
            trail=deque(maxlen=self.parameters.trail_length),
        )
        if body.dimensions != self.dimensions:
            raise InvalidBodyError(
                f"body has {body.dimensions} components, simulation uses {self.dimensions}"
            )
        body.id = next(self._ids)
        if not name:
            body.name = f"Body {body.id}"
        self._bodies.append(body)
        logger.debug("Added %s (id=%d, mass=%g)", body.name, body.id, body.mass)
        return body

    def remove_body(self, body_id: int) -> Body:
        body = self.get_body(body_id)
        self._bodies.remove(body)
        logger.debug("Removed %s (id=%d)", body.name, body.id)
        return body

    def edit_body(self, body_id: int, position: Optional[Vector] = None,
                  velocity: Optional[Vector] = None, mass: Optional[float] = None) -> Body:
        body = self.get_body(body_id)
        # Validate everything before touching the body.
        new_position = body.position if position is None else coerce_vector(position, "position")
        new_velocity = body.velocity if velocity is None else coerce_vector(velocity, "velocity")
        new_mass = body.mass if mass is None else validate_mass(mass)
        if len(new_position) != self.dimensions or len(new_velocity) != self.dimensions:
            raise InvalidBodyError(f"vectors must have {self.dimensions} components")
        body.position = new_position
        body.velocity = new_velocity
        body.mass = new_mass
        if position is not None:
            body.trail.clear()
        return body

    def set_parameter(self, name: str, value) -> SimulationParameters:
        params = self.parameters.with_value(name, value)
        if params.trail_length != self.parameters.trail_length:
            for b in self._bodies:
                b.trail = deque(b.trail, maxlen=params.trail_length)
        self.parameters = params
        logger.debug("Parameter %s set to %r", name, getattr(params, name))
        return params

    def reset(self) -> None:
        """Restore the initial bodies and parameters; the run state is kept."""
        if self._respawn is not None:
            fresh = list(self._respawn())
            if any(b.dimensions != self.dimensions for b in fresh):
                raise InvalidBodyError(f"respawned bodies must have {self.dimensions} components")
            self._initial_bodies = [(b.position, b.velocity, b.mass, b.name) for b in fresh]
        self.parameters = self._initial_parameters
        self._bodies = []
        self._ids = itertools.count()
        self.time = 0.0
        self.step_count = 0
        self.fault = None
        for position, velocity, mass, name in self._initial_bodies:
            self.add_body(position, velocity, mass, name)
        logger.info("Simulation reset with %d bodies", len(self._bodies))

    # -----------------------
    # Stepping
    # -----------------------

    def step(self) -> StepReport:
        if self.fault is not None:
            raise InternalInvariantViolation(f"simulation halted: {self.fault}")
        params = self.parameters

        compute_accelerations(self._bodies, params)
        integrate(self._bodies, params)

        bad = [b for b in self._bodies if not b.is_finite()]
        if bad:
            names = ", ".join(f"{b.name} (id={b.id})" for b in bad)
            self.fault = f"non-finite state at step {self.step_count + 1}: {names}"
            self.running = False
            logger.error("Internal invariant violation: %s", self.fault)
            raise InternalInvariantViolation(self.fault)

        removed: Tuple[BodyState, ...] = ()
        if params.escape_radius is not None:
            gone = [b for b in self._bodies if vec_len(b.position) > params.escape_radius]
            for b in gone:
                self._bodies.remove(b)
                logger.info("%s (id=%d) left the escape radius", b.name, b.id)
            removed = tuple(b.state() for b in gone)

        for b in self._bodies:
            b.add_trail_point()

        self.time += params.time_step
        self.step_count += 1
        return StepReport(time=self.time, step_count=self.step_count, removed=removed)
