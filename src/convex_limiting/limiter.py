"""Convex limiter.

Given local bounds and an update direction P, find the largest l in
[t_min, t_max] such that

    rho_min <= rho(U + l P) <= rho_max,    s(U + l P) >= s_min.

The density constraints are affine in l and solved in closed form. The
entropy constraint is enforced by finding the root of the 3-convex function

    Psi(l) = rho^(gamma+1)(U + l P) * (s(U + l P) - s_min)

with a safeguarded quadratic Newton iteration (see newton.py).
"""

import functools

import jax
import jax.numpy as jnp
from jaxtyping import Array, Bool, Float

from . import newton
from .limiter_types import Bounds, LimiterConfig
from .limiter_utils import map_nodes
from .state_algebra_types import StateAlgebra

ROUNDOFF_RELAXATION = 10000.0
"""Relative slack (in units of machine epsilon) of the admissibility check."""


def limit_density(
    rho_U: Float[Array, ""],
    rho_P: Float[Array, ""],
    rho_min: Float[Array, ""],
    rho_max: Float[Array, ""],
    t_min: Float[Array, ""],
    t_max: Float[Array, ""],
) -> tuple[Float[Array, ""], Float[Array, ""]]:
    """Sub-interval of [t_min, t_max] on which rho_min <= rho_U + t rho_P <= rho_max.

    If rho_P vanishes the constraint is vacuous. If the intersection is
    empty, the interval collapses onto the end of [t_min, t_max] closest to
    zero.
    """
    vacuous = rho_P == 0.0
    safe_rho_P = jnp.where(vacuous, 1.0, rho_P)

    t_at_rho_max = (rho_max - rho_U) / safe_rho_P
    t_at_rho_min = (rho_min - rho_U) / safe_rho_P

    increasing = rho_P > 0.0
    upper = jnp.where(increasing, t_at_rho_max, t_at_rho_min)
    lower = jnp.where(increasing, t_at_rho_min, t_at_rho_max)

    t_l = jnp.where(vacuous, t_min, jnp.maximum(t_min, lower))
    t_r = jnp.where(vacuous, t_max, jnp.minimum(t_max, upper))

    empty = t_l > t_r
    t_closest = jnp.where(jnp.abs(t_min) <= jnp.abs(t_max), t_min, t_max)
    t_l = jnp.where(empty, t_closest, t_l)
    t_r = jnp.where(empty, t_closest, t_r)

    return t_l, t_r


def limit_specific_entropy(
    algebra: StateAlgebra,
    s_min: Float[Array, ""],
    U: Float[Array, " n_variables"],
    P: Float[Array, " n_variables"],
    t_l: Float[Array, ""],
    t_r: Float[Array, ""],
    newton_tolerance: float,
    newton_max_iterations: int,
) -> tuple[Float[Array, ""], Float[Array, ""]]:
    """Shrink [t_l, t_r] onto the largest root of Psi.

    t_l is assumed to be admissible (Psi(t_l) >= 0). If Psi(t_r) >= 0 the
    whole interval is admissible and t_l is moved to t_r. Otherwise the
    bracket is shrunk until it is narrower than newton_tolerance or
    newton_max_iterations is reached.
    """

    def psi(t):
        return algebra.entropy_constraint(U + t * P, s_min)

    def dpsi(t):
        return algebra.entropy_constraint_derivative(U + t * P, P, s_min)

    def cond(carry):
        n, _, _, done = carry
        return (n < newton_max_iterations) & jnp.logical_not(done)

    def body(carry):
        n, t_l, t_r, _ = carry

        psi_r = psi(t_r)
        right_admissible = psi_r >= 0.0
        t_l = jnp.where(right_admissible, t_r, t_l)

        done = right_admissible | ((t_r - t_l) < newton_tolerance)

        psi_l = psi(t_l)
        t_l_new, t_r_new = newton.safeguarded_bracket_update(
            t_l, t_r, psi_l, psi_r, dpsi(t_l), dpsi(t_r), psi
        )

        t_l = jnp.where(done, t_l, t_l_new)
        t_r = jnp.where(done, t_r, t_r_new)
        done = done | ((t_r - t_l) < newton_tolerance)

        return n + 1, t_l, t_r, done

    _, t_l, t_r, _ = jax.lax.while_loop(
        cond, body, (jnp.array(0, dtype=jnp.int32), t_l, t_r, jnp.array(False))
    )

    return t_l, t_r


def is_in_invariant_domain(
    algebra: StateAlgebra,
    bounds: Bounds,
    U: Float[Array, " n_variables"],
    relative_tolerance: float = 0.0,
) -> Bool[Array, ""]:
    """Returns whether U satisfies rho_min <= rho <= rho_max and s >= s_min.

    relative_tolerance widens each bound by that fraction of its magnitude.
    """
    rho = algebra.density(U)
    s = algebra.specific_entropy(U)

    rho_min, rho_max, s_min = bounds
    return (
        (rho >= rho_min - relative_tolerance * jnp.abs(rho_min))
        & (rho <= rho_max + relative_tolerance * jnp.abs(rho_max))
        & (s >= s_min - relative_tolerance * jnp.abs(s_min))
    )


def limit(
    algebra: StateAlgebra,
    bounds: Bounds,
    U: Float[Array, " n_variables"],
    P: Float[Array, " n_variables"],
    newton_tolerance: float,
    newton_max_iterations: int,
    t_min: float = 0.0,
    t_max: float = 1.0,
    check_limited_state: bool = False,
) -> tuple[Float[Array, ""], Bool[Array, ""]]:
    """Maximal blending factor t in [t_min, t_max] such that U + t P stays in bounds.

    Args:
        algebra: State observables of the hyperbolic system
        bounds: Local bounds of the node
        U: Low-order state
        P: Update direction
        newton_tolerance: Bracket width at which the root find stops
        newton_max_iterations: Maximal number of Newton/bisection steps
        t_min, t_max: Search interval, t_min <= t_max
        check_limited_state: If True, the returned flag also requires the
            limited state U + t P to be in bounds

    Returns:
        t: Blending factor
        admissible: True if the low-order state U was inside bounds
    """
    dtype = U.dtype
    t_min = jnp.asarray(t_min, dtype=dtype)
    t_max = jnp.asarray(t_max, dtype=dtype)

    rho_min, rho_max, s_min = bounds

    t_l, t_r = limit_density(
        algebra.density(U), algebra.density(P), rho_min, rho_max, t_min, t_max
    )

    t_l, t_r = limit_specific_entropy(
        algebra,
        s_min,
        U,
        P,
        t_l,
        t_r,
        newton_tolerance,
        newton_max_iterations,
    )

    relax = ROUNDOFF_RELAXATION * jnp.finfo(dtype).eps
    admissible = is_in_invariant_domain(algebra, bounds, U, relative_tolerance=relax)
    if check_limited_state:
        admissible = admissible & is_in_invariant_domain(
            algebra, bounds, U + t_l * P, relative_tolerance=relax
        )

    return t_l, admissible


def limit_nodes(
    algebra: StateAlgebra,
    bounds: Bounds,
    U: Float[Array, "n_nodes n_variables"],
    P: Float[Array, "n_nodes n_variables"],
    config: LimiterConfig,
) -> tuple[Float[Array, " n_nodes"], Bool[Array, " n_nodes"]]:
    """limit() for every node, config.batch_size nodes in lockstep."""
    limit_node = functools.partial(
        limit,
        algebra,
        newton_tolerance=config.newton_tolerance,
        newton_max_iterations=config.newton_max_iterations,
        check_limited_state=config.check_limited_state,
    )

    return map_nodes(lambda args: limit_node(*args), (bounds, U, P), config.batch_size)
