"""
Unit tests for vector math, the force model and the integrator.
Run: python -m pytest test_physics.py -v
"""
import math
import random

import pytest

from nbody.data_models import Body, SimulationParameters
from nbody.errors import DegenerateVectorError, InvalidBodyError, InvalidParameterError
from nbody.integrator import integrate_body
from nbody.physics import (
    accumulate_pair,
    centre_of_mass,
    circular_orbit_velocity,
    compute_accelerations,
    escape_velocity,
    kinetic_energy,
    total_momentum,
    unbound_bodies,
)
from nbody.vector_utils import (
    vec_add,
    vec_clamp_len,
    vec_dot,
    vec_is_finite,
    vec_len,
    vec_norm,
    vec_scale,
    vec_sub,
    vec_zero,
)


class TestVectorMath:
    """Vector helpers"""

    def test_basic_operations(self):
        assert vec_add((1.0, 2.0), (3.0, 4.0)) == (4.0, 6.0)
        assert vec_sub((1.0, 2.0, 3.0), (1.0, 1.0, 1.0)) == (0.0, 1.0, 2.0)
        assert vec_scale((1.0, -2.0), 3.0) == (3.0, -6.0)
        assert vec_dot((1.0, 2.0), (3.0, 4.0)) == 11.0
        assert vec_zero(3) == (0.0, 0.0, 0.0)

    def test_magnitude_of_zero_is_zero(self):
        assert vec_len((0.0, 0.0)) == 0.0
        assert vec_len((3.0, 4.0)) == 5.0
        assert vec_len((2.0, 3.0, 6.0)) == 7.0

    def test_norm(self):
        assert vec_norm((0.0, 5.0)) == (0.0, 1.0)
        assert vec_len(vec_norm((1.0, 1.0, 1.0))) == pytest.approx(1.0)

    def test_norm_of_zero_vector_raises(self):
        with pytest.raises(DegenerateVectorError):
            vec_norm((0.0, 0.0))

    def test_dimension_mismatch(self):
        with pytest.raises(ValueError):
            vec_add((1.0, 2.0), (1.0, 2.0, 3.0))

    def test_clamp_len_keeps_direction(self):
        clamped = vec_clamp_len((30.0, 40.0), 5.0)
        assert clamped == pytest.approx((3.0, 4.0))
        # Exactly at the limit is returned untouched
        assert vec_clamp_len((3.0, 4.0), 5.0) == (3.0, 4.0)
        assert vec_clamp_len((3.0, 4.0), math.inf) == (3.0, 4.0)

    def test_is_finite(self):
        assert vec_is_finite((1.0, 2.0))
        assert not vec_is_finite((1.0, math.inf))
        assert not vec_is_finite((math.nan, 0.0))


class TestModels:
    """Body and parameter validation"""

    def test_body_rejects_non_positive_mass(self):
        for mass in (0.0, -1.0, math.nan, math.inf, "heavy"):
            with pytest.raises(InvalidBodyError):
                Body(0, mass, (0.0, 0.0), (0.0, 0.0))

    def test_body_rejects_huge_mass(self):
        with pytest.raises(InvalidBodyError):
            Body(0, 10 ** 400, (0.0, 0.0), (0.0, 0.0))

    def test_body_rejects_bad_vectors(self):
        with pytest.raises(InvalidBodyError):
            Body(0, 1.0, (0.0, 0.0, 0.0, 0.0), (0.0, 0.0, 0.0, 0.0))
        with pytest.raises(InvalidBodyError):
            Body(0, 1.0, (0.0, 0.0), (0.0, 0.0, 0.0))
        with pytest.raises(InvalidBodyError):
            Body(0, 1.0, (math.inf, 0.0), (0.0, 0.0))
        with pytest.raises(InvalidBodyError):
            Body(0, 1.0, "12", (0.0, 0.0))

    def test_body_defaults(self):
        b = Body(7, 2, [1, 2], [0, 0])
        assert b.position == (1.0, 2.0)
        assert b.acceleration == (0.0, 0.0)
        assert b.name == "Body 7"

    def test_parameter_domains(self):
        p = SimulationParameters()
        assert p.with_value("damping_factor", 1.0).damping_factor == 1.0
        assert p.with_value("damping_factor", 0.0).damping_factor == 0.0
        assert p.with_value("max_acceleration_magnitude", math.inf).max_acceleration_magnitude == math.inf
        assert p.with_value("escape_radius", 0).escape_radius is None
        assert p.with_value("trail_length", 5.0).trail_length == 5
        assert p.with_value("trail_length", 10_000).trail_length == 10_000
        bad = [
            ("damping_factor", 1.5),
            ("damping_factor", -0.1),
            ("gravitational_constant", 0.0),
            ("time_step", -1.0),
            ("time_step", math.inf),
            ("softening_radius", 0.0),
            ("max_acceleration_magnitude", 0.0),
            ("escape_radius", -5.0),
            ("trail_length", 2.5),
            ("trail_length", 1e19),
            ("trail_length", 10_001),
            ("gravitational_constant", 10 ** 400),
            ("time_step", math.nan),
            ("time_step", True),
            ("time_step", "fast"),
            ("no_such_parameter", 1.0),
        ]
        for name, value in bad:
            with pytest.raises(InvalidParameterError):
                p.with_value(name, value)

    def test_with_value_returns_new_instance(self):
        p = SimulationParameters()
        q = p.with_value("time_step", 1.0)
        assert p.time_step != q.time_step
        assert q.gravitational_constant == p.gravitational_constant


class TestForceModel:
    """Pairwise gravity with softening"""

    def test_pair_is_equal_and_opposite(self):
        a = Body(0, 1.0, (0.0, 0.0), (0.0, 0.0))
        b = Body(1, 1.0, (2.0, 0.0), (0.0, 0.0))
        accumulate_pair(a, b, 1.0, 0.01)
        assert a.acceleration == pytest.approx((0.25, 0.0))
        assert b.acceleration == pytest.approx((-0.25, 0.0))

    def test_contribution_uses_other_mass(self):
        light = Body(0, 1.0, (0.0, 0.0), (0.0, 0.0))
        heavy = Body(1, 4.0, (0.0, 2.0), (0.0, 0.0))
        accumulate_pair(light, heavy, 2.0, 0.01)
        # G * m_other / r^2
        assert light.acceleration == pytest.approx((0.0, 2.0))
        assert heavy.acceleration == pytest.approx((0.0, -0.5))

    def test_softening_limits_magnitude(self):
        a = Body(0, 1.0, (0.0, 0.0), (0.0, 0.0))
        b = Body(1, 1.0, (0.001, 0.0), (0.0, 0.0))
        accumulate_pair(a, b, 1.0, 0.1)
        assert vec_len(a.acceleration) == pytest.approx(100.0)

    def test_coincident_bodies_contribute_nothing(self):
        a = Body(0, 1.0, (1.0, 1.0), (0.0, 0.0))
        b = Body(1, 1.0, (1.0, 1.0), (0.0, 0.0))
        accumulate_pair(a, b, 1.0, 0.1)
        assert a.acceleration == (0.0, 0.0)
        assert b.acceleration == (0.0, 0.0)

    def test_compute_accelerations_resets_first(self):
        params = SimulationParameters(gravitational_constant=1.0, softening_radius=0.01)
        bodies = [Body(0, 1.0, (0.0, 0.0), (0.0, 0.0)), Body(1, 1.0, (1.0, 0.0), (0.0, 0.0))]
        bodies[0].acceleration = (99.0, 99.0)
        compute_accelerations(bodies, params)
        compute_accelerations(bodies, params)
        assert bodies[0].acceleration == pytest.approx((1.0, 0.0))

    def test_three_body_symmetry(self):
        params = SimulationParameters(gravitational_constant=1.0, softening_radius=0.01)
        bodies = [
            Body(i, 1.0, (math.cos(t), math.sin(t)), (0.0, 0.0))
            for i, t in enumerate((math.pi / 2, math.pi / 2 + 2 * math.pi / 3, math.pi / 2 + 4 * math.pi / 3))
        ]
        compute_accelerations(bodies, params)
        mags = [vec_len(b.acceleration) for b in bodies]
        assert mags[0] == pytest.approx(mags[1])
        assert mags[1] == pytest.approx(mags[2])
        net = vec_add(vec_add(bodies[0].acceleration, bodies[1].acceleration), bodies[2].acceleration)
        assert vec_len(net) == pytest.approx(0.0, abs=1e-12)

    def test_orbit_helpers(self):
        assert circular_orbit_velocity(1.0, 100.0, 4.0) == pytest.approx(5.0)
        assert escape_velocity(1.0, 100.0, 2.0) == pytest.approx(10.0)
        assert circular_orbit_velocity(1.0, 100.0, 0.0) == 0.0
        assert escape_velocity(1.0, 0.0, 2.0) == 0.0

    def test_diagnostics(self):
        bodies = [Body(0, 1.0, (0.0, 0.0), (1.0, 0.0)), Body(1, 3.0, (4.0, 0.0), (0.0, 2.0))]
        assert total_momentum(bodies) == pytest.approx((1.0, 6.0))
        assert kinetic_energy(bodies) == pytest.approx(0.5 + 6.0)
        assert centre_of_mass(bodies) == pytest.approx((3.0, 0.0))

    def test_unbound_bodies(self):
        fast = [Body(0, 1.0, (-1.0, 0.0), (0.0, 10.0)), Body(1, 1.0, (1.0, 0.0), (0.0, -10.0))]
        assert [b.id for b in unbound_bodies(fast, 1.0)] == [0, 1]
        slow = [Body(0, 1.0, (-1.0, 0.0), (0.0, 0.5)), Body(1, 1.0, (1.0, 0.0), (0.0, -0.5))]
        assert unbound_bodies(slow, 1.0) == []
        assert unbound_bodies(fast[:1], 1.0) == []

    def test_unbound_uses_centre_of_mass_frame(self):
        # A bound pair drifting together is still bound
        drifting = [Body(0, 1.0, (-1.0, 0.0), (100.0, 0.5)), Body(1, 1.0, (1.0, 0.0), (100.0, -0.5))]
        assert unbound_bodies(drifting, 1.0) == []


class TestIntegrator:
    """Capped, damped semi-implicit Euler"""

    def test_step_order(self):
        params = SimulationParameters(time_step=0.5, damping_factor=0.5, max_acceleration_magnitude=100.0)
        b = Body(0, 1.0, (0.0, 0.0), (1.0, 0.0))
        b.acceleration = (2.0, 0.0)
        integrate_body(b, params)
        # v = (1 + 2*0.5) * 0.5 = 1.0 ; x = 0 + 1.0*0.5
        assert b.velocity == pytest.approx((1.0, 0.0))
        assert b.position == pytest.approx((0.5, 0.0))

    def test_acceleration_is_capped_by_magnitude(self):
        params = SimulationParameters(time_step=1.0, damping_factor=1.0, max_acceleration_magnitude=5.0)
        b = Body(0, 1.0, (0.0, 0.0), (0.0, 0.0))
        b.acceleration = (30.0, 40.0)
        integrate_body(b, params)
        assert b.acceleration == pytest.approx((3.0, 4.0))
        assert b.velocity == pytest.approx((3.0, 4.0))

    def test_acceleration_exactly_at_cap_is_kept(self):
        params = SimulationParameters(time_step=1.0, damping_factor=1.0, max_acceleration_magnitude=5.0)
        b = Body(0, 1.0, (0.0, 0.0), (0.0, 0.0))
        b.acceleration = (3.0, 4.0)
        integrate_body(b, params)
        assert b.acceleration == (3.0, 4.0)

    def test_full_damping_stops_body(self):
        params = SimulationParameters(time_step=1.0, damping_factor=0.0)
        b = Body(0, 1.0, (1.0, 1.0), (5.0, 5.0))
        integrate_body(b, params)
        assert b.velocity == (0.0, 0.0)
        assert b.position == (1.0, 1.0)

    def test_random_configurations_stay_finite(self):
        rng = random.Random(1234)
        params = SimulationParameters(gravitational_constant=1e3, time_step=1.0, damping_factor=1.0,
                                      max_acceleration_magnitude=math.inf, softening_radius=1e-3)
        for _ in range(50):
            n = rng.randint(1, 8)
            bodies = [
                Body(i, rng.uniform(1e-3, 1e3), (rng.choice([0.0, rng.uniform(-1, 1)]), rng.uniform(-1, 1)),
                     (rng.uniform(-1, 1), rng.uniform(-1, 1)))
                for i in range(n)
            ]
            compute_accelerations(bodies, params)
            for b in bodies:
                integrate_body(b, params)
                assert b.is_finite()
