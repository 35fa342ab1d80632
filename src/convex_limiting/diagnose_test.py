"""Unit tests for diagnose.py"""

import jax
import jax.numpy as jnp
import pytest

from convex_limiting import diagnose
from convex_limiting import limiter_types

jax.config.update("jax_enable_x64", True)


def make_result(t, admissible=None, rho_min=None, rho_max=None, s_min=None):
    t = jnp.asarray(t)
    n = t.shape[0]
    return limiter_types.LimiterResult(
        bounds=limiter_types.Bounds(
            rho_min=jnp.full(n, 0.5) if rho_min is None else jnp.asarray(rho_min),
            rho_max=jnp.full(n, 2.0) if rho_max is None else jnp.asarray(rho_max),
            s_min=jnp.full(n, 1.0) if s_min is None else jnp.asarray(s_min),
        ),
        t=t,
        admissible=jnp.ones(n, dtype=bool)
        if admissible is None
        else jnp.asarray(admissible),
    )


def test_check_nan_inf():
    diagnose.check_nan_inf(jnp.array([0.0, 0.5, 1.0]))

    with pytest.raises(ValueError, match="NaN"):
        diagnose.check_nan_inf(jnp.array([0.0, jnp.nan]))

    with pytest.raises(ValueError, match="Inf"):
        diagnose.check_nan_inf(jnp.array([0.0, jnp.inf]))


def test_check_blending_factor():
    diagnose.check_blending_factor(jnp.array([0.0, 1.0]))

    with pytest.raises(ValueError, match="outside"):
        diagnose.check_blending_factor(jnp.array([0.5, 1.0 + 1e-8]))

    with pytest.raises(ValueError, match="outside"):
        diagnose.check_blending_factor(jnp.array([-1e-8]))


def test_check_bounds_ordering_detects_inverted_bounds():
    bounds = limiter_types.Bounds(
        rho_min=jnp.array([0.5, 1.5]),
        rho_max=jnp.array([2.0, 1.0]),
        s_min=jnp.array([1.0, 1.0]),
    )

    with pytest.raises(ValueError, match="inverted"):
        diagnose.check_bounds_ordering(bounds)


def test_check_bounds_ordering_ignores_isolated_nodes():
    sentinel = jnp.finfo(jnp.float64).max
    bounds = limiter_types.Bounds(
        rho_min=jnp.array([0.5, sentinel]),
        rho_max=jnp.array([2.0, 0.0]),
        s_min=jnp.array([1.0, 1.0]),
    )

    diagnose.check_bounds_ordering(bounds)


def test_check_bounds_ordering_detects_non_finite_bounds():
    with pytest.raises(ValueError, match="Density"):
        diagnose.check_bounds_ordering(
            limiter_types.Bounds(
                rho_min=jnp.array([jnp.nan]),
                rho_max=jnp.array([1.0]),
                s_min=jnp.array([1.0]),
            )
        )

    with pytest.raises(ValueError, match="Entropy"):
        diagnose.check_bounds_ordering(
            limiter_types.Bounds(
                rho_min=jnp.array([0.5]),
                rho_max=jnp.array([1.0]),
                s_min=jnp.array([-jnp.inf]),
            )
        )


def test_check_admissibility_warns_and_counts():
    admissible = jnp.array([True, False, True, False])

    with pytest.warns(RuntimeWarning, match="2 of 4 low-order states"):
        n_violations = diagnose.check_admissibility(admissible)

    assert n_violations == 2


def test_check_all_debug_output(capsys):
    result = make_result([1.0, 0.5, 0.25, 1.0])

    diagnose.check_all(result, debug=True)

    captured = capsys.readouterr()
    assert "Admissible nodes: \t4/4" in captured.out
    assert "limited nodes: 2/4" in captured.out


def test_check_all_without_abort_skips_checks():
    result = make_result([jnp.nan, 2.0])

    diagnose.check_all(result, abort=False)

    with pytest.raises(ValueError, match="NaN"):
        diagnose.check_all(result, abort=True)
