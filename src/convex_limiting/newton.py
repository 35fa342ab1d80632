"""Bracketing root finder for 3-convex functions.

Given a bracket [p_1, p_2] with phi(p_1) >= 0 > phi(p_2), a quadratic
Newton step is taken from both ends simultaneously. For a 3-convex phi the
two iterates stay on their side of the root, so the bracket shrinks
monotonically. Steps that nevertheless leave the bracket (round-off,
non-convex input) are replaced by a bisection step.
"""

from typing import Callable

import jax.numpy as jnp
from jaxtyping import Array, Float


def quadratic_newton_candidates(
    p_1: Float[Array, "..."],
    p_2: Float[Array, "..."],
    phi_p_1: Float[Array, "..."],
    phi_p_2: Float[Array, "..."],
    dphi_p_1: Float[Array, "..."],
    dphi_p_2: Float[Array, "..."],
    sign: float = 1.0,
) -> tuple[Float[Array, "..."], Float[Array, "..."]]:
    """One quadratic Newton step from the left and from the right end.

    Uses the divided differences of the Hermite data (phi, dphi) at p_1 and
    p_2. sign selects the root of the local quadratic model: +1 for an
    increasing, -1 for a decreasing phi.

    Returns:
        Unclamped candidates (t_1, t_2)
    """
    eps = jnp.finfo(jnp.result_type(p_1, float)).eps

    scaling = 1.0 / (p_2 - p_1 + eps)

    dd_11 = dphi_p_1
    dd_12 = (phi_p_2 - phi_p_1) * scaling
    dd_22 = dphi_p_2

    dd_112 = (dd_12 - dd_11) * scaling
    dd_122 = (dd_22 - dd_12) * scaling

    # Root of phi + dd_11 h + dd_112 h^2 closest to h = 0 (and likewise at p_2)
    discriminant_1 = jnp.abs(dd_11 * dd_11 - 4.0 * phi_p_1 * dd_112)
    discriminant_2 = jnp.abs(dd_22 * dd_22 - 4.0 * phi_p_2 * dd_122)

    denominator_1 = dd_11 + sign * jnp.sqrt(discriminant_1)
    denominator_2 = dd_22 + sign * jnp.sqrt(discriminant_2)

    # Avoid 0/0: a vanishing denominator means no step
    degenerate_1 = jnp.abs(denominator_1) < eps
    degenerate_2 = jnp.abs(denominator_2) < eps
    safe_denominator_1 = jnp.where(degenerate_1, 1.0, denominator_1)
    safe_denominator_2 = jnp.where(degenerate_2, 1.0, denominator_2)

    t_1 = p_1 - jnp.where(degenerate_1, 0.0, 2.0 * phi_p_1 / safe_denominator_1)
    t_2 = p_2 - jnp.where(degenerate_2, 0.0, 2.0 * phi_p_2 / safe_denominator_2)

    return t_1, t_2


def safeguarded_bracket_update(
    t_l: Float[Array, "..."],
    t_r: Float[Array, "..."],
    psi_l: Float[Array, "..."],
    psi_r: Float[Array, "..."],
    dpsi_l: Float[Array, "..."],
    dpsi_r: Float[Array, "..."],
    psi: Callable[[Float[Array, "..."]], Float[Array, "..."]],
) -> tuple[Float[Array, "..."], Float[Array, "..."]]:
    """Shrink the bracket [t_l, t_r] of a decreasing 3-convex psi.

    The quadratic Newton step is accepted if both candidates are finite,
    ordered, inside the bracket and strictly shrink it. Otherwise the
    bracket is bisected using the sign of psi at the midpoint.
    """
    t_1, t_2 = quadratic_newton_candidates(
        t_l, t_r, psi_l, psi_r, dpsi_l, dpsi_r, sign=-1.0
    )

    accept = (
        jnp.isfinite(t_1)
        & jnp.isfinite(t_2)
        & (t_l <= t_1)
        & (t_1 <= t_2)
        & (t_2 <= t_r)
        & ((t_2 - t_1) < (t_r - t_l))
    )

    t_mid = 0.5 * (t_l + t_r)
    mid_ok = psi(t_mid) >= 0.0
    t_l_bisect = jnp.where(mid_ok, t_mid, t_l)
    t_r_bisect = jnp.where(mid_ok, t_r, t_mid)

    return jnp.where(accept, t_1, t_l_bisect), jnp.where(accept, t_2, t_r_bisect)
