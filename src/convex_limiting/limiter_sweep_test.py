"""Unit tests for limiter_sweep.py"""

import warnings

import jax
import jax.numpy as jnp
import pytest

from convex_limiting import limiter
from convex_limiting import limiter_sweep
from convex_limiting import limiter_types
from convex_limiting import state_algebra
from convex_limiting import stencil_utils

# Configure JAX for testing
jax.config.update("jax_enable_x64", True)

GAMMA = 1.4
N_NODES = 32

ALGEBRA = state_algebra.build_euler_state_algebra(GAMMA, dim=1)
STENCIL = stencil_utils.build_periodic_1d_stencil(N_NODES, wave_speed=2.0)


def create_shock_tube_state(n_nodes: int = N_NODES):
    """Sod-like states (left: rho=1, p=1, right: rho=0.125, p=0.1) at rest."""
    left = jnp.arange(n_nodes) < n_nodes // 2
    rho = jnp.where(left, 1.0, 0.125)
    p = jnp.where(left, 1.0, 0.1)
    v = jnp.zeros((n_nodes, 1))
    return state_algebra.to_conserved(rho, v, p, GAMMA)


def create_overshooting_update(U):
    """Correction that moves every node 1.5 times towards its right neighbor."""
    return 1.5 * (jnp.roll(U, -1, axis=0) - U)


def test_sweep_constant_state_is_not_limited():
    U = jnp.tile(jnp.array([1.0, 0.2, 2.5]), (N_NODES, 1))
    P = jnp.zeros_like(U)

    result = limiter_sweep.sweep(
        U, P, STENCIL, ALGEBRA, limiter_types.LimiterConfig()
    )

    assert jnp.all(result.t == 1.0)
    assert jnp.all(result.admissible)
    assert jnp.allclose(limiter_sweep.blend(U, P, result.t), U)


def test_sweep_shock_tube_stays_in_bounds():
    U = create_shock_tube_state()
    P = create_overshooting_update(U)
    config = limiter_types.LimiterConfig(check_limited_state=True)

    result = limiter_sweep.sweep(U, P, STENCIL, ALGEBRA, config)

    assert jnp.all((result.t >= 0.0) & (result.t <= 1.0))
    assert jnp.all(result.bounds.rho_min <= result.bounds.rho_max)
    assert jnp.all(result.admissible)

    # Nodes away from the discontinuities are unaffected by P = 0
    assert result.t[4] == 1.0
    # Nodes in front of a jump are limited
    assert result.t[N_NODES // 2 - 1] < 1.0

    U_limited = limiter_sweep.blend(U, P, result.t)
    in_bounds = jax.vmap(
        lambda b, V: limiter.is_in_invariant_domain(
            ALGEBRA, limiter_types.Bounds(*b), V, relative_tolerance=1e-10
        )
    )(tuple(result.bounds), U_limited)
    assert jnp.all(in_bounds)


def test_sweep_batch_size_does_not_change_result():
    U = create_shock_tube_state()
    P = create_overshooting_update(U)

    full = limiter_sweep.sweep(U, P, STENCIL, ALGEBRA, limiter_types.LimiterConfig())
    batched = limiter_sweep.sweep(
        U, P, STENCIL, ALGEBRA, limiter_types.LimiterConfig(batch_size=5)
    )

    assert jnp.allclose(full.t, batched.t)
    for a, b in zip(full.bounds, batched.bounds):
        assert jnp.allclose(a, b)


def test_run_returns_blended_state_without_warnings():
    U = create_shock_tube_state()
    P = create_overshooting_update(U)

    with warnings.catch_warnings():
        warnings.simplefilter("error", RuntimeWarning)
        U_limited, result = limiter_sweep.run(
            U, P, STENCIL, ALGEBRA, limiter_types.LimiterConfig(), debug=True
        )

    assert U_limited.shape == U.shape
    assert jnp.allclose(U_limited, U + result.t[:, None] * P)


def test_run_warns_about_inadmissible_low_order_states():
    U = create_shock_tube_state()
    # A single undershoot that violates the local density bounds
    U = U.at[4, 0].set(0.5)
    P = create_overshooting_update(U)

    with pytest.warns(RuntimeWarning, match="outside of their local bounds"):
        limiter_sweep.run(U, P, STENCIL, ALGEBRA, limiter_types.LimiterConfig())


def test_run_rejects_inconsistent_shapes():
    U = create_shock_tube_state()
    P = create_overshooting_update(U)[:-1]

    with pytest.raises(ValueError, match="shapes"):
        limiter_sweep.run(U, P, STENCIL, ALGEBRA, limiter_types.LimiterConfig())


def test_run_rejects_wrong_dimension():
    algebra_2d = state_algebra.build_euler_state_algebra(GAMMA, dim=2)
    U = create_shock_tube_state()
    P = jnp.zeros_like(U)

    with pytest.raises(ValueError, match="variables"):
        limiter_sweep.run(U, P, STENCIL, algebra_2d, limiter_types.LimiterConfig())
