"""
Tests for the Simulation: stepping, structural commands and invariants.
Run: python -m pytest test_simulation.py -v
"""
import math

import pytest

from nbody.data_models import Body, SimulationParameters
from nbody.errors import (
    InternalInvariantViolation,
    InvalidBodyError,
    InvalidParameterError,
    UnknownBodyIdError,
)
from nbody.physics import total_momentum
from nbody.simulation import Simulation
from nbody.vector_utils import vec_len


def make_pair(**overrides):
    params = dict(gravitational_constant=1.0, softening_radius=0.01, time_step=0.1,
                  damping_factor=1.0, max_acceleration_magnitude=1000.0)
    params.update(overrides)
    bodies = [Body(0, 1.0, (0.0, 0.0), (0.0, 0.0)), Body(1, 1.0, (1.0, 0.0), (0.0, 0.0))]
    return Simulation(bodies, SimulationParameters(**params), start_paused=False)


def runaway():
    """A single body whose next position overflows to infinity."""
    params = SimulationParameters(time_step=10.0, damping_factor=1.0, max_acceleration_magnitude=math.inf)
    return Simulation([Body(0, 1.0, (0.0, 0.0), (1e308, 0.0))], params, start_paused=False)


class TestStep:
    """One discrete step"""

    def test_two_bodies_move_toward_each_other(self):
        sim = make_pair()
        report = sim.step()
        a, b = sim.bodies
        assert a.velocity == pytest.approx((0.1, 0.0))
        assert b.velocity == pytest.approx((-0.1, 0.0))
        assert a.position == pytest.approx((0.01, 0.0))
        assert b.position == pytest.approx((0.99, 0.0))
        assert report.time == pytest.approx(0.1)
        assert report.step_count == 1

    def test_momentum_is_conserved_without_damping_or_cap(self):
        params = SimulationParameters(gravitational_constant=10.0, time_step=0.05, damping_factor=1.0,
                                      max_acceleration_magnitude=math.inf, softening_radius=0.5)
        bodies = [
            Body(0, 1.0, (0.0, 0.0), (0.0, 1.0)),
            Body(1, 3.0, (5.0, 0.0), (0.0, -1.0 / 3.0)),
            Body(2, 2.0, (0.0, 7.0), (0.5, 0.0)),
        ]
        sim = Simulation(bodies, params)
        before = total_momentum(sim.bodies)
        for _ in range(100):
            sim.step()
        after = total_momentum(sim.bodies)
        assert after == pytest.approx(before, abs=1e-9)

    def test_acceleration_never_exceeds_cap(self):
        sim = make_pair(max_acceleration_magnitude=5.0)
        sim.edit_body(1, position=(0.001, 0.0))
        for _ in range(5):
            sim.step()
            for b in sim.bodies:
                assert vec_len(b.acceleration) <= 5.0 * (1 + 1e-12)

    def test_damping_shrinks_speed_of_isolated_body(self):
        params = SimulationParameters(time_step=1.0, damping_factor=0.5)
        sim = Simulation([Body(0, 1.0, (0.0, 0.0), (1.0, 0.0))], params)
        sim.step()
        body = sim.get_body(0)
        assert body.velocity == pytest.approx((0.5, 0.0))
        assert body.position == pytest.approx((0.5, 0.0))

    def test_coincident_bodies_stay_finite(self):
        bodies = [Body(i, 1.0, (3.0, 3.0), (0.0, 0.0)) for i in range(3)]
        sim = Simulation(bodies, SimulationParameters(max_acceleration_magnitude=math.inf))
        sim.step()
        assert all(b.is_finite() for b in sim.bodies)
        assert all(b.acceleration == (0.0, 0.0) for b in sim.bodies)

    def test_three_dimensional_scene(self):
        params = SimulationParameters(gravitational_constant=1.0, time_step=0.1, damping_factor=1.0,
                                      max_acceleration_magnitude=1000.0, softening_radius=0.01)
        sim = Simulation([Body(0, 1.0, (0.0, 0.0, 0.0), (0.0, 0.0, 0.0)),
                          Body(1, 1.0, (0.0, 0.0, 1.0), (0.0, 0.0, 0.0))], params)
        sim.step()
        assert sim.get_body(0).position == pytest.approx((0.0, 0.0, 0.01))
        assert sim.get_body(1).position == pytest.approx((0.0, 0.0, 0.99))

    def test_empty_simulation_advances_time(self):
        sim = Simulation(parameters=SimulationParameters(time_step=2.0))
        sim.step()
        sim.step()
        assert sim.time == pytest.approx(4.0)
        assert sim.bodies == ()

    def test_trails_record_positions(self):
        sim = make_pair()
        for _ in range(3):
            sim.step()
        assert all(len(b.trail) == 3 for b in sim.bodies)
        sim.set_parameter("trail_length", 2)
        assert all(len(b.trail) == 2 for b in sim.bodies)
        assert sim.get_body(0).trail[-1] == sim.get_body(0).position


class TestFault:
    """Non-finite state halts the simulation"""

    def test_overflow_raises_and_halts(self):
        sim = runaway()
        with pytest.raises(InternalInvariantViolation):
            sim.step()
        assert sim.fault is not None
        assert sim.running is False
        assert sim.snapshot().fault == sim.fault

    def test_no_step_after_fault(self):
        sim = runaway()
        with pytest.raises(InternalInvariantViolation):
            sim.step()
        with pytest.raises(InternalInvariantViolation):
            sim.step()
        with pytest.raises(InternalInvariantViolation):
            sim.resume()

    def test_reset_clears_fault(self):
        sim = runaway()
        with pytest.raises(InternalInvariantViolation):
            sim.step()
        sim.reset()
        assert sim.fault is None
        assert sim.get_body(0).position == (0.0, 0.0)
        sim.resume()
        assert sim.running


class TestEscapeRadius:
    def test_body_beyond_radius_is_removed(self):
        params = SimulationParameters(time_step=1.0, damping_factor=1.0, escape_radius=10.0)
        sim = Simulation([Body(0, 1.0, (9.9, 0.0), (1.0, 0.0)), Body(1, 1.0, (-1.0, 0.0), (0.0, 0.0))],
                         params)
        report = sim.step()
        assert [b.id for b in report.removed] == [0]
        assert [b.id for b in sim.bodies] == [1]

    def test_disabled_by_default(self):
        params = SimulationParameters(time_step=1.0, damping_factor=1.0)
        sim = Simulation([Body(0, 1.0, (1e6, 0.0), (1.0, 0.0))], params)
        report = sim.step()
        assert report.removed == ()
        assert len(sim.bodies) == 1


class TestStructuralCommands:
    """Add, remove, edit and parameter changes"""

    def test_add_body_assigns_fresh_ids(self):
        sim = make_pair()
        body = sim.add_body((5.0, 5.0), (0.0, 0.0), 2.0)
        assert body.id == 2
        assert body.name == "Body 2"
        sim.remove_body(2)
        assert sim.add_body((5.0, 5.0), (0.0, 0.0), 2.0, name="Late").id == 3

    def test_add_body_with_negative_mass_is_rejected(self):
        sim = make_pair()
        with pytest.raises(InvalidBodyError):
            sim.add_body((2.0, 2.0), (0.0, 0.0), -1.0)
        assert len(sim.bodies) == 2

    def test_add_body_with_wrong_dimension_is_rejected(self):
        sim = make_pair()
        with pytest.raises(InvalidBodyError):
            sim.add_body((0.0, 0.0, 0.0), (0.0, 0.0, 0.0), 1.0)
        assert len(sim.bodies) == 2

    def test_remove_unknown_id(self):
        sim = make_pair()
        with pytest.raises(UnknownBodyIdError):
            sim.remove_body(42)
        assert len(sim.bodies) == 2

    def test_bodies_keep_insertion_order(self):
        sim = make_pair()
        sim.add_body((5.0, 0.0), (0.0, 0.0), 1.0)
        sim.remove_body(0)
        sim.add_body((6.0, 0.0), (0.0, 0.0), 1.0)
        assert [b.id for b in sim.bodies] == [1, 2, 3]

    def test_edit_body_is_all_or_nothing(self):
        sim = make_pair()
        with pytest.raises(InvalidBodyError):
            sim.edit_body(0, position=(9.0, 9.0), mass=0.0)
        body = sim.get_body(0)
        assert body.position == (0.0, 0.0)
        assert body.mass == 1.0

    def test_edit_body(self):
        sim = make_pair()
        sim.step()
        sim.edit_body(1, position=(4.0, 0.0), velocity=(0.0, 1.0), mass=2.0)
        body = sim.get_body(1)
        assert body.position == (4.0, 0.0)
        assert body.velocity == (0.0, 1.0)
        assert body.mass == 2.0
        assert len(body.trail) == 0

    def test_invalid_parameter_keeps_previous_value(self):
        params = SimulationParameters(time_step=1.0, damping_factor=0.5)
        sim = Simulation([Body(0, 1.0, (0.0, 0.0), (1.0, 0.0))], params)
        with pytest.raises(InvalidParameterError):
            sim.set_parameter("damping_factor", 1.5)
        assert sim.parameters.damping_factor == 0.5
        sim.step()
        assert sim.get_body(0).velocity == pytest.approx((0.5, 0.0))

    def test_parameter_change_applies_to_next_step(self):
        sim = make_pair()
        sim.set_parameter("time_step", 0.2)
        report = sim.step()
        assert report.time == pytest.approx(0.2)
        assert sim.get_body(0).velocity == pytest.approx((0.2, 0.0))


class TestSnapshot:
    def test_snapshot_is_detached_from_state(self):
        sim = make_pair()
        snap = sim.snapshot()
        sim.step()
        assert snap.find(0).position == (0.0, 0.0)
        assert snap.step_count == 0
        assert sim.snapshot().step_count == 1

    def test_find_unknown(self):
        assert make_pair().snapshot().find(99) is None

    def test_empty_snapshot(self):
        snap = Simulation().snapshot()
        assert snap.bodies == ()
        assert snap.running is False

    def test_reset_restores_initial_scene(self):
        sim = make_pair()
        sim.set_parameter("time_step", 0.5)
        sim.add_body((5.0, 5.0), (0.0, 0.0), 1.0)
        for _ in range(3):
            sim.step()
        sim.reset()
        snap = sim.snapshot()
        assert snap.time == 0.0
        assert snap.step_count == 0
        assert snap.parameters.time_step == 0.1
        assert [(b.id, b.position) for b in snap.bodies] == [(0, (0.0, 0.0)), (1, (1.0, 0.0))]
        assert snap.running is True

    def test_reset_with_respawn_draws_new_bodies(self):
        rolls = iter([
            [Body(0, 2.0, (7.0, 7.0), (0.0, 0.0))],
            [Body(0, 3.0, (8.0, 8.0), (0.0, 0.0)), Body(1, 1.0, (9.0, 9.0), (0.0, 0.0))],
        ])
        sim = Simulation([Body(0, 1.0, (0.0, 0.0), (0.0, 0.0))], respawn=lambda: next(rolls))
        sim.step()
        sim.reset()
        assert [(b.id, b.position, b.mass) for b in sim.bodies] == [(0, (7.0, 7.0), 2.0)]
        sim.reset()
        assert [b.position for b in sim.bodies] == [(8.0, 8.0), (9.0, 9.0)]

    def test_respawn_with_wrong_dimension_is_rejected(self):
        sim = Simulation([Body(0, 1.0, (0.0, 0.0), (0.0, 0.0))],
                         respawn=lambda: [Body(0, 1.0, (0.0, 0.0, 0.0), (0.0, 0.0, 0.0))])
        with pytest.raises(InvalidBodyError):
            sim.reset()
        assert sim.get_body(0).position == (0.0, 0.0)
