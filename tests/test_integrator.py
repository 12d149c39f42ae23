"""
Tests for LatticeIntegrator - two-phase step.

Tests:
    - Equilibrium and free-fall scenarios
    - Velocity from positional delta
    - Anchors never move
    - Determinism across worker counts
    - Snapshot isolation (input never mutated)
    - Error cases
"""

import itertools

import pytest
import numpy as np

from spring_lattice.integrator import LatticeIntegrator, default_worker_count
from spring_lattice.controls import ControlSnapshot
from spring_lattice.config import PhysicsConfig, DynamicsConfig
from spring_lattice.perturbation import ExternalPerturbation
from spring_lattice.state import LatticeState
from spring_lattice.exceptions import DegenerateGeometryError, NonFiniteStateError

OFF = ControlSnapshot(gravity_enabled=False, external_enabled=False)
GRAVITY = ControlSnapshot(gravity_enabled=True, external_enabled=False)
ALL_TOGGLES = [
    ControlSnapshot(gravity_enabled=g, external_enabled=e)
    for g, e in itertools.product([False, True], repeat=2)
]


@pytest.fixture
def integrator():
    with LatticeIntegrator(PhysicsConfig(), n_workers=1) as integ:
        yield integ


def perturbed_lattice(width=6, height=5, seed=0):
    """Lattice knocked off equilibrium so every force term is non-trivial."""
    state = LatticeState.create(width, height)
    rng = np.random.default_rng(seed)
    state.positions += rng.normal(scale=0.1, size=state.positions.shape)
    state.velocities += rng.normal(scale=0.3, size=state.velocities.shape)
    return state


class TestScenarios:
    """Closed-form single-step scenarios."""

    def test_equilibrium_pair_does_not_move(self, integrator):
        """2x1 at rest length, no gravity: nothing changes."""
        state = LatticeState.create(2, 1)
        new = integrator.advance(state, 0.01, OFF)

        np.testing.assert_array_equal(new.positions, [[-1.0, 10.0], [0.0, 10.0]])
        np.testing.assert_array_equal(new.velocities, np.zeros((2, 2)))

    def test_single_node_free_fall(self, integrator):
        """Isolated node, gravity only, dt = 0.1."""
        state = LatticeState.create(1, 1)
        old_y = state.positions[0, 1]
        new = integrator.advance(state, 0.1, GRAVITY)

        assert new.positions[0, 0] == 0.0
        assert new.positions[0, 1] == pytest.approx(old_y - 0.04905, abs=1e-12)
        assert new.velocities[0, 0] == 0.0
        assert new.velocities[0, 1] == pytest.approx(-0.4905, abs=1e-10)

    def test_free_fall_velocity_is_half_step(self):
        """Velocity gains 0.5 a dt per step, not a dt."""
        state = LatticeState.create(1, 1)
        with LatticeIntegrator(PhysicsConfig(damping_coefficient=0.0), n_workers=1) as integ:
            new = integ.advance(state, 0.1, GRAVITY)
            newer = integ.advance(new, 0.1, GRAVITY)
        # v2 = (p2 - p1)/dt = v1 + 0.5 a dt = -0.4905 - 0.4905
        assert newer.velocities[0, 1] == pytest.approx(-0.981, abs=1e-9)

    def test_time_and_step_counters(self, integrator):
        state = LatticeState.create(2, 2)
        new = integrator.advance(state, 0.01, OFF)
        assert new.steps == 1
        assert new.t == pytest.approx(0.01)


class TestInvariants:
    """Properties that hold for any lattice and toggle combination."""

    def test_velocity_equals_positional_delta(self, integrator):
        state = perturbed_lattice()
        state.mark_fixed([0])
        dt = 0.01
        new = integrator.advance(state, dt, GRAVITY)

        free = ~state.fixed
        expected = (new.positions[free] - state.positions[free]) / dt
        np.testing.assert_allclose(new.velocities[free], expected, rtol=0, atol=1e-12)

    @pytest.mark.parametrize("controls", ALL_TOGGLES)
    def test_fixed_nodes_bit_identical(self, controls):
        state = perturbed_lattice()
        anchors = [state.index(0, 4), state.index(5, 4), state.index(2, 2)]
        state.mark_fixed(anchors)
        start_pos = state.positions[anchors].copy()
        start_vel = state.velocities[anchors].copy()

        with LatticeIntegrator(PhysicsConfig(), n_workers=3,
                               perturbation=ExternalPerturbation(0.2, seed=1)) as integ:
            current = state
            for _ in range(25):
                current = integ.advance(current, 0.01, controls)

        np.testing.assert_array_equal(current.positions[anchors], start_pos)
        np.testing.assert_array_equal(current.velocities[anchors], start_vel)

    def test_input_state_not_mutated(self, integrator):
        state = perturbed_lattice()
        before_pos = state.positions.copy()
        before_vel = state.velocities.copy()
        new = integrator.advance(state, 0.01, GRAVITY)

        np.testing.assert_array_equal(state.positions, before_pos)
        np.testing.assert_array_equal(state.velocities, before_vel)
        assert new.positions is not state.positions
        assert new.velocities is not state.velocities

    def test_topology_shared_between_steps(self, integrator):
        state = LatticeState.create(3, 3)
        new = integrator.advance(state, 0.01, GRAVITY)
        assert new.neighbours is state.neighbours
        assert new.fixed is state.fixed


class TestDeterminism:
    """Results do not depend on how nodes are split across workers."""

    @pytest.mark.parametrize("n_workers", [2, 3, 4, 7])
    def test_worker_count_does_not_change_result(self, n_workers):
        state = perturbed_lattice(9, 7)
        state.mark_fixed(state.anchor_indices())

        with LatticeIntegrator(PhysicsConfig(), n_workers=1) as serial, \
                LatticeIntegrator(PhysicsConfig(), n_workers=n_workers) as parallel:
            a = state
            b = state
            for _ in range(10):
                a = serial.advance(a, 0.01, GRAVITY)
                b = parallel.advance(b, 0.01, GRAVITY)

        np.testing.assert_array_equal(a.positions, b.positions)
        np.testing.assert_array_equal(a.velocities, b.velocities)

    def test_repeat_from_same_snapshot(self, integrator):
        state = perturbed_lattice()
        first = integrator.advance(state, 0.01, GRAVITY)
        second = integrator.advance(state, 0.01, GRAVITY)
        np.testing.assert_array_equal(first.positions, second.positions)
        np.testing.assert_array_equal(first.velocities, second.velocities)

    def test_seeded_perturbation_reproducible(self):
        state = perturbed_lattice()
        controls = ControlSnapshot(gravity_enabled=True, external_enabled=True)
        results = []
        for n_workers in (1, 4):
            with LatticeIntegrator(PhysicsConfig(), n_workers=n_workers,
                                   perturbation=ExternalPerturbation(0.2, seed=123)) as integ:
                current = state
                for _ in range(5):
                    current = integ.advance(current, 0.01, controls)
                results.append(current)

        np.testing.assert_array_equal(results[0].positions, results[1].positions)

    def test_perturbation_changes_trajectory(self):
        state = LatticeState.create(3, 3)
        with LatticeIntegrator(PhysicsConfig(), n_workers=1,
                               perturbation=ExternalPerturbation(0.2, seed=5)) as integ:
            quiet = integ.advance(state, 0.01, OFF)
            noisy = integ.advance(state, 0.01, ControlSnapshot(False, True))
        assert not np.array_equal(quiet.positions, noisy.positions)


class TestErrors:

    def test_coincident_nodes_abort_step(self, integrator):
        state = LatticeState.create(2, 1)
        state.positions[1] = state.positions[0]
        with pytest.raises(DegenerateGeometryError):
            integrator.advance(state, 0.01, OFF)

    def test_coincident_nodes_abort_parallel_step(self):
        state = LatticeState.create(4, 4)
        state.positions[state.index(3, 3)] = state.positions[state.index(3, 2)]
        with LatticeIntegrator(PhysicsConfig(), n_workers=4) as integ:
            with pytest.raises(DegenerateGeometryError):
                integ.advance(state, 0.01, OFF)

    def test_non_finite_result_raises(self, integrator):
        state = LatticeState.create(1, 1)
        state.velocities[0] = [np.inf, 0.0]
        with pytest.raises(NonFiniteStateError) as exc_info:
            integrator.advance(state, 0.01, OFF)
        assert exc_info.value.indices == [0]

    @pytest.mark.parametrize("dt", [0.0, -0.01])
    def test_non_positive_dt_rejected(self, integrator, dt):
        with pytest.raises(ValueError):
            integrator.advance(LatticeState.create(2, 2), dt, OFF)

    def test_zero_workers_rejected(self):
        with pytest.raises(ValueError):
            LatticeIntegrator(PhysicsConfig(), n_workers=0)


class TestConfiguration:

    def test_default_worker_count_positive(self):
        assert default_worker_count() >= 1

    def test_from_config(self):
        integ = LatticeIntegrator.from_config(PhysicsConfig(), DynamicsConfig(n_workers=2), seed=9)
        try:
            assert integ.n_workers == 2
            assert integ.perturbation.seed == 9
            assert integ.perturbation.magnitude == 0.2
        finally:
            integ.close()

    def test_more_workers_than_nodes(self):
        with LatticeIntegrator(PhysicsConfig(), n_workers=8) as integ:
            new = integ.advance(LatticeState.create(1, 1), 0.1, GRAVITY)
        assert new.positions[0, 1] < 10.0
