import warnings

import jax.numpy as jnp
import jaxtyping as jt
from beartype import beartype
from jaxtyping import Array, Bool, Float, Int

from .limiter_types import Bounds, LimiterResult
from .state_algebra_types import StateAlgebra
from .stencil_types import Stencil


def runtime_check_array_sizes(f):
    """Decorator to enforce jaxtyping shape annotations at runtime."""
    return jt.jaxtyped(typechecker=beartype)(f)


@runtime_check_array_sizes
def _check_sweep_arrays(
    U: Float[Array, "n_nodes n_variables"],
    P: Float[Array, "n_nodes n_variables"],
    neighbors: Int[Array, "n_nodes max_row"],
    mask: Bool[Array, "n_nodes max_row"],
    c_ij: Float[Array, "n_nodes max_row dim"],
    beta_ij: Float[Array, "n_nodes max_row"],
    measure: Float[Array, " n_nodes"],
) -> None:
    return None


def check_input_shapes(
    U: Float[Array, "n_nodes n_variables"],
    P: Float[Array, "n_nodes n_variables"],
    stencil: Stencil,
    algebra: StateAlgebra,
) -> None:
    try:
        _check_sweep_arrays(
            U,
            P,
            stencil.neighbors,
            stencil.mask,
            stencil.c_ij,
            stencil.beta_ij,
            stencil.measure,
        )
    except jt.TypeCheckError as e:
        raise ValueError(f"Inconsistent limiter input shapes: {e}") from e

    if U.shape[1] != algebra.n_variables:
        raise ValueError(
            f"State has {U.shape[1]} variables, expected {algebra.n_variables} "
            f"for dim={algebra.dim}."
        )
    if stencil.dim != algebra.dim:
        raise ValueError(
            f"Stencil edge vectors have dim={stencil.dim}, expected {algebra.dim}."
        )


def check_nan_inf(t) -> None:
    if jnp.any(jnp.isnan(t)):
        raise ValueError("NaN values present in blending factors.")

    if jnp.any(jnp.isinf(t)):
        raise ValueError("Inf values present in blending factors.")


def check_bounds_ordering(bounds: Bounds) -> None:
    if jnp.any(~jnp.isfinite(bounds.rho_min)) or jnp.any(
        ~jnp.isfinite(bounds.rho_max)
    ):
        raise ValueError("Density bounds are not finite.")

    if jnp.any(~jnp.isfinite(bounds.s_min)):
        raise ValueError("Entropy bound is not finite.")

    # Nodes without neighbors keep the sentinel rho_min = finfo.max
    isolated = bounds.rho_min == jnp.finfo(bounds.rho_min.dtype).max
    if jnp.any((bounds.rho_min > bounds.rho_max) & ~isolated):
        raise ValueError("Density bounds inverted: rho_min > rho_max.")


def check_blending_factor(t, t_min: float = 0.0, t_max: float = 1.0) -> None:
    if jnp.any(t < t_min) or jnp.any(t > t_max):
        raise ValueError(f"Blending factor outside of [{t_min}, {t_max}].")


def check_admissibility(admissible, debug: bool = False) -> int:
    """Warn about nodes whose low-order state violated its own bounds.

    Returns:
        Number of inadmissible nodes
    """
    n_violations = int(jnp.sum(~admissible))
    if debug:
        print(f"Admissible nodes: \t{admissible.size - n_violations}/{admissible.size}")

    if n_violations > 0:
        warnings.warn(
            f"{n_violations} of {admissible.size} low-order states are outside "
            "of their local bounds.",
            RuntimeWarning,
            stacklevel=2,
        )
    return n_violations


def check_all(result: LimiterResult, debug: bool = False, abort: bool = True) -> None:
    if abort:
        check_nan_inf(result.t)
        check_blending_factor(result.t)
        check_bounds_ordering(result.bounds)

    check_admissibility(result.admissible, debug=debug)

    if debug:
        live_diagnostics(result)


def live_diagnostics(result: LimiterResult):
    print(
        f"t min/mean: {jnp.min(result.t):.4e}/{jnp.mean(result.t):.4e}, "
        f"\tlimited nodes: {int(jnp.sum(result.t < 1.0))}/{result.t.size}"
    )
