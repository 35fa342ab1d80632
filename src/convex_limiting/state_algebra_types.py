from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

import jax
from jaxtyping import Array, Float


ScalarFn = Callable[[Float[Array, " n_variables"]], Float[Array, ""]]
ConstraintFn = Callable[
    [Float[Array, " n_variables"], Float[Array, ""]], Float[Array, ""]
]
ConstraintDerivativeFn = Callable[
    [Float[Array, " n_variables"], Float[Array, " n_variables"], Float[Array, ""]],
    Float[Array, ""],
]


@jax.tree_util.register_dataclass
@dataclass(frozen=True, eq=False)
class StateAlgebra:
    """Container for the state observables the convex limiter needs.

    All callables act on a single conserved state U of shape (n_variables,).
    Batching is done by the caller via jax.vmap / jax.lax.map.

    Attributes:
        gamma: Ratio of specific heats (exponent of the entropy constraint)
        dim: Spatial dimension
        density: U -> rho
        momentum: U -> m, shape (dim,)
        specific_entropy: U -> s
        entropy_constraint: (U, s_min) -> Psi = rho^(gamma+1) (s - s_min)
        entropy_constraint_derivative: (U, P, s_min) -> dPsi(U + tP)/dt at t=0
        precompute: U -> [s, eta], the per-node precomputed values
    """

    gamma: float = field(metadata=dict(static=True))
    dim: int = field(metadata=dict(static=True))
    density: ScalarFn = field(metadata=dict(static=True))
    momentum: Callable[[Float[Array, " n_variables"]], Float[Array, " dim"]] = (
        field(metadata=dict(static=True))
    )
    specific_entropy: ScalarFn = field(metadata=dict(static=True))
    entropy_constraint: ConstraintFn = field(metadata=dict(static=True))
    entropy_constraint_derivative: ConstraintDerivativeFn = field(
        metadata=dict(static=True)
    )
    precompute: Callable[[Float[Array, " n_variables"]], Float[Array, " 2"]] = (
        field(metadata=dict(static=True))
    )

    @property
    def n_variables(self) -> int:
        return self.dim + 2
