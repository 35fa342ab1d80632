"""Limiting sweep over all nodes.

Every node goes through precompute -> bounds -> limit independently; the
result is consumed by the high-order update assembly via blend().
"""

import jax
from jaxtyping import Array, Float

from . import bounds as bounds_module
from . import diagnose
from . import limiter
from .limiter_types import LimiterConfig, LimiterResult
from .state_algebra_types import StateAlgebra
from .stencil_types import Stencil


def precompute(
    U: Float[Array, "n_nodes n_variables"], algebra: StateAlgebra
) -> Float[Array, "n_nodes 2"]:
    """Per-node precomputed values [s, eta]."""
    return jax.vmap(algebra.precompute)(U)


def sweep(
    U: Float[Array, "n_nodes n_variables"],
    P: Float[Array, "n_nodes n_variables"],
    stencil: Stencil,
    algebra: StateAlgebra,
    config: LimiterConfig,
) -> LimiterResult:
    """Compute bounds and blending factors of all nodes.

    Args:
        U: Low-order states
        P: High-order correction per node
        stencil: Sparsity graph with edge geometry
        algebra: State observables of the hyperbolic system
        config: Limiter settings

    Returns:
        LimiterResult with bounds, blending factor t and admissibility flag
    """
    precomputed = precompute(U, algebra)
    node_bounds = bounds_module.compute_bounds(U, precomputed, stencil, algebra, config)
    t, admissible = limiter.limit_nodes(algebra, node_bounds, U, P, config)
    return LimiterResult(bounds=node_bounds, t=t, admissible=admissible)


def blend(
    U: Float[Array, "n_nodes n_variables"],
    P: Float[Array, "n_nodes n_variables"],
    t: Float[Array, " n_nodes"],
) -> Float[Array, "n_nodes n_variables"]:
    """Limited high-order update U + t P."""
    return U + t[:, None] * P


sweep_jit = jax.jit(sweep)


def run(
    U: Float[Array, "n_nodes n_variables"],
    P: Float[Array, "n_nodes n_variables"],
    stencil: Stencil,
    algebra: StateAlgebra,
    config: LimiterConfig,
    debug: bool = False,
    abort: bool = True,
) -> tuple[Float[Array, "n_nodes n_variables"], LimiterResult]:
    """Limit the update P, check the result and return the blended state."""
    diagnose.check_input_shapes(U, P, stencil, algebra)

    result = sweep_jit(U, P, stencil, algebra, config)
    diagnose.check_all(result, debug=debug, abort=abort)

    return blend(U, P, result.t), result
