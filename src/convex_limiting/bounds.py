"""Stencil-based computation of the local invariant-domain bounds.

Intended usage per node i:

    acc = reset(s_i)
    for j in stencil(i):
        acc = accumulate(acc, U_i, U_j, s_j, c_ij, beta_ij, algebra)
    acc = apply_relaxation(acc, hd_i, factor, dim)
    bounds(acc)

compute_bounds() does this for all nodes of a Stencil at once.
"""

import jax
import jax.numpy as jnp
from jaxtyping import Array, Bool, Float, Int

from .limiter_types import Bounds, BoundsAccumulator, LimiterConfig
from .limiter_utils import map_nodes
from .state_algebra_types import StateAlgebra
from .stencil_types import Stencil


def reset(s_i: Float[Array, ""]) -> BoundsAccumulator:
    """Fresh accumulator for a node with precomputed specific entropy s_i."""
    s_i = jnp.asarray(s_i)
    zero = jnp.zeros_like(s_i)
    return BoundsAccumulator(
        rho_min=jnp.full_like(s_i, jnp.finfo(s_i.dtype).max),
        rho_max=zero,
        s_min=s_i,
        rho_relaxation_numerator=zero,
        rho_relaxation_denominator=zero,
        s_interp_max=zero,
    )


def accumulate(
    acc: BoundsAccumulator,
    U_i: Float[Array, " n_variables"],
    U_j: Float[Array, " n_variables"],
    s_j: Float[Array, ""],
    c_ij: Float[Array, " dim"],
    beta_ij: Float[Array, ""],
    algebra: StateAlgebra,
) -> BoundsAccumulator:
    """Add the contribution of the stencil edge (i, j)."""
    rho_i = algebra.density(U_i)
    m_i = algebra.momentum(U_i)
    rho_j = algebra.density(U_j)
    m_j = algebra.momentum(U_j)

    rho_ij_bar = 0.5 * (rho_i + rho_j + jnp.dot(m_i - m_j, c_ij))

    s_interp = algebra.specific_entropy(0.5 * (U_i + U_j))

    return BoundsAccumulator(
        rho_min=jnp.minimum(acc.rho_min, rho_ij_bar),
        rho_max=jnp.maximum(acc.rho_max, rho_ij_bar),
        s_min=jnp.minimum(acc.s_min, s_j),
        rho_relaxation_numerator=acc.rho_relaxation_numerator
        + beta_ij * (rho_i + rho_j),
        rho_relaxation_denominator=acc.rho_relaxation_denominator
        + jnp.abs(beta_ij),
        s_interp_max=jnp.maximum(acc.s_interp_max, s_interp),
    )


def relaxation_radius(
    hd_i: Float[Array, ""], factor: float, dim: int
) -> Float[Array, ""]:
    """r_i = factor * hd_i^(3 / (2 dim))

    The exponent makes the relaxation vanish at the same rate under mesh
    refinement in every dimension.
    """
    if dim == 1:
        r_i = hd_i**1.5
    elif dim == 2:
        r_i = hd_i**0.75
    elif dim == 3:
        r_i = jnp.sqrt(hd_i)
    else:
        raise ValueError(f"Unsupported spatial dimension: {dim}")
    return factor * r_i


def apply_relaxation(
    acc: BoundsAccumulator,
    hd_i: Float[Array, ""],
    factor: float = 2.0,
    dim: int = 1,
) -> BoundsAccumulator:
    """Widen the stencil bounds.

    Each bound is relaxed by the tighter of a multiplicative and an additive
    formula. The result is never narrower than the unrelaxed bound.
    """
    r_i = relaxation_radius(hd_i, factor, dim)

    eps = jnp.finfo(acc.rho_min.dtype).eps
    rho_relaxation = jnp.abs(acc.rho_relaxation_numerator) / (
        jnp.abs(acc.rho_relaxation_denominator) + eps
    )

    rho_min = jnp.maximum((1.0 - r_i) * acc.rho_min, acc.rho_min - 2.0 * rho_relaxation)
    rho_max = jnp.minimum((1.0 + r_i) * acc.rho_max, acc.rho_max + 2.0 * rho_relaxation)
    s_min = jnp.maximum((1.0 - r_i) * acc.s_min, 2.0 * acc.s_min - acc.s_interp_max)

    # s_interp_max < s_min only happens for an empty stencil
    return BoundsAccumulator(
        rho_min=jnp.minimum(rho_min, acc.rho_min),
        rho_max=jnp.maximum(rho_max, acc.rho_max),
        s_min=jnp.minimum(s_min, acc.s_min),
        rho_relaxation_numerator=acc.rho_relaxation_numerator,
        rho_relaxation_denominator=acc.rho_relaxation_denominator,
        s_interp_max=acc.s_interp_max,
    )


def bounds(acc: BoundsAccumulator) -> Bounds:
    return Bounds(rho_min=acc.rho_min, rho_max=acc.rho_max, s_min=acc.s_min)


def _select(
    pred: Bool[Array, ""], on_true: BoundsAccumulator, on_false: BoundsAccumulator
) -> BoundsAccumulator:
    return jax.tree_util.tree_map(
        lambda a, b: jnp.where(pred, a, b), on_true, on_false
    )


def node_bounds(
    i: Int[Array, ""],
    U: Float[Array, "n_nodes n_variables"],
    precomputed: Float[Array, "n_nodes 2"],
    stencil: Stencil,
    algebra: StateAlgebra,
    relaxation_factor: float,
) -> Bounds:
    """Relaxed bounds of node i.

    Neighbors are visited in the (ascending) row order of the stencil, so
    the floating-point summation order is reproducible.
    """
    U_i = U[i]
    acc = reset(precomputed[i, 0])

    def body(k, acc):
        j = stencil.neighbors[i, k]
        acc_new = accumulate(
            acc,
            U_i,
            U[j],
            precomputed[j, 0],
            stencil.c_ij[i, k],
            stencil.beta_ij[i, k],
            algebra,
        )
        return _select(stencil.mask[i, k], acc_new, acc)

    acc = jax.lax.fori_loop(0, stencil.max_row, body, acc)
    acc = apply_relaxation(acc, stencil.measure[i], relaxation_factor, algebra.dim)
    return bounds(acc)


def compute_bounds(
    U: Float[Array, "n_nodes n_variables"],
    precomputed: Float[Array, "n_nodes 2"],
    stencil: Stencil,
    algebra: StateAlgebra,
    config: LimiterConfig,
) -> Bounds:
    """Relaxed bounds of all nodes.

    Nodes are independent; they are processed in batches of
    config.batch_size nodes in lockstep.
    """
    return map_nodes(
        lambda i: node_bounds(
            i, U, precomputed, stencil, algebra, config.relaxation_factor
        ),
        jnp.arange(stencil.n_nodes),
        config.batch_size,
    )
