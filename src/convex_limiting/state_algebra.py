"""Observables of the compressible Euler equations for a polytropic gas.

State vector: U = [rho, m_1, ..., m_dim, E]

All functions act on a single state of shape (n_variables,) and are
batched by the caller.
"""

import functools

import jax
import jax.numpy as jnp
import pydantic
from jaxtyping import Array, Float

from .state_algebra_types import StateAlgebra


def density(U: Float[Array, " n_variables"]) -> Float[Array, ""]:
    return U[0]


def momentum(U: Float[Array, " n_variables"]) -> Float[Array, " dim"]:
    return U[1:-1]


def total_energy(U: Float[Array, " n_variables"]) -> Float[Array, ""]:
    return U[-1]


def internal_energy(U: Float[Array, " n_variables"]) -> Float[Array, ""]:
    """Volumetric internal energy rho*e = E - |m|^2 / (2 rho)."""
    rho = density(U)
    m = momentum(U)
    return total_energy(U) - 0.5 * jnp.sum(m**2) / rho


def internal_energy_derivative(
    U: Float[Array, " n_variables"],
) -> Float[Array, " n_variables"]:
    """Gradient of rho*e with respect to the conserved variables.

    d(rho e)/dU = [|v|^2 / 2, -v, 1]
    """
    v = momentum(U) / density(U)
    return jnp.concatenate(
        [
            jnp.atleast_1d(0.5 * jnp.sum(v**2)),
            -v,
            jnp.ones(1, dtype=U.dtype),
        ]
    )


def specific_entropy(
    U: Float[Array, " n_variables"], gamma: pydantic.PositiveFloat
) -> Float[Array, ""]:
    """s = rho*e * rho^(-gamma), up to a monotone transformation the
    physical specific entropy."""
    rho = density(U)
    return internal_energy(U) * rho ** (-gamma)


def harten_entropy(
    U: Float[Array, " n_variables"], gamma: pydantic.PositiveFloat
) -> Float[Array, ""]:
    """eta = (rho^2 e)^(1 / (gamma + 1))"""
    rho = density(U)
    return (rho * internal_energy(U)) ** (1.0 / (gamma + 1.0))


def entropy_constraint(
    U: Float[Array, " n_variables"],
    s_min: Float[Array, ""],
    gamma: pydantic.PositiveFloat,
) -> Float[Array, ""]:
    """Psi(U) = rho^(gamma+1) (s(U) - s_min) = rho * rho*e - s_min * rho^(gamma+1)

    Psi is 3-convex along any line U + tP, which is what makes the
    quadratic Newton iteration in newton.py converge monotonically.
    """
    rho = density(U)
    return rho * internal_energy(U) - s_min * rho ** (gamma + 1.0)


def entropy_constraint_derivative(
    U: Float[Array, " n_variables"],
    P: Float[Array, " n_variables"],
    s_min: Float[Array, ""],
    gamma: pydantic.PositiveFloat,
) -> Float[Array, ""]:
    """Directional derivative d/dt Psi(U + tP) at t = 0."""
    rho = density(U)
    rho_e = internal_energy(U)
    drho = density(P)
    drho_e = jnp.dot(internal_energy_derivative(U), P)
    return rho * drho_e + (rho_e - (gamma + 1.0) * s_min * rho**gamma) * drho


def precompute_values(
    U: Float[Array, " n_variables"], gamma: pydantic.PositiveFloat
) -> Float[Array, " 2"]:
    """Per-node precomputed values [s, eta]."""
    return jnp.stack([specific_entropy(U, gamma), harten_entropy(U, gamma)])


def jvp_constraint_derivative(entropy_constraint_fn):
    """Build a constraint derivative from an entropy constraint via forward-mode AD.

    Used for algebras that do not provide a closed-form derivative.
    """

    def derivative(U, P, s_min):
        _, dpsi = jax.jvp(lambda V: entropy_constraint_fn(V, s_min), (U,), (P,))
        return dpsi

    return derivative


def build_euler_state_algebra(
    gamma: pydantic.PositiveFloat, dim: int, use_autodiff: bool = False
) -> StateAlgebra:
    """Build the StateAlgebra of a polytropic gas.

    Args:
        gamma: Ratio of specific heats, must be > 1
        dim: Spatial dimension (1, 2 or 3)
        use_autodiff: If True, dPsi/dt is computed with jax.jvp instead of
            the closed-form expression

    Returns:
        StateAlgebra with all callables bound to gamma
    """
    if not gamma > 1.0:
        raise ValueError(f"Ratio of specific heats must be > 1, got gamma={gamma}.")
    if dim not in (1, 2, 3):
        raise ValueError(f"Spatial dimension must be 1, 2 or 3, got dim={dim}.")

    constraint = functools.partial(entropy_constraint, gamma=gamma)
    if use_autodiff:
        constraint_derivative = jvp_constraint_derivative(constraint)
    else:
        constraint_derivative = functools.partial(
            entropy_constraint_derivative, gamma=gamma
        )

    return StateAlgebra(
        gamma=gamma,
        dim=dim,
        density=density,
        momentum=momentum,
        specific_entropy=functools.partial(specific_entropy, gamma=gamma),
        entropy_constraint=constraint,
        entropy_constraint_derivative=constraint_derivative,
        precompute=functools.partial(precompute_values, gamma=gamma),
    )


def to_conserved(
    rho: Float[Array, "..."],
    v: Float[Array, "... dim"],
    p: Float[Array, "..."],
    gamma: pydantic.PositiveFloat,
) -> Float[Array, "... n_variables"]:
    """Converts primitive variables (rho, v, p) to U = [rho, rho*v, E].

    E = p / (gamma - 1) + 0.5 * rho * |v|^2
    """
    rho = jnp.asarray(rho)
    v = jnp.asarray(v)
    E = p / (gamma - 1.0) + 0.5 * rho * jnp.sum(v**2, axis=-1)
    return jnp.concatenate(
        [rho[..., None], rho[..., None] * v, jnp.asarray(E)[..., None]], axis=-1
    )
