from dataclasses import dataclass, field
from typing import NamedTuple

import jax
from jaxtyping import Array, Bool, Float


class Bounds(NamedTuple):
    """Local bounds of the invariant domain of one node (or a batch of nodes)."""

    rho_min: Float[Array, "..."]
    rho_max: Float[Array, "..."]
    s_min: Float[Array, "..."]


@jax.tree_util.register_dataclass
@dataclass(frozen=True, slots=True)
class BoundsAccumulator:
    """Transient state of one node's bounds computation.

    Created by bounds.reset(), advanced by bounds.accumulate() once per
    stencil edge and finalized by bounds.apply_relaxation(). Every
    operation returns a new accumulator.
    """

    rho_min: Float[Array, ""]
    rho_max: Float[Array, ""]
    s_min: Float[Array, ""]
    rho_relaxation_numerator: Float[Array, ""]
    rho_relaxation_denominator: Float[Array, ""]
    s_interp_max: Float[Array, ""]


@jax.tree_util.register_dataclass
@dataclass(frozen=True, slots=True)
class LimiterConfig:
    """Solver-level settings of the convex limiter.

    All fields are static so the config can be passed to jitted functions.
    """

    newton_tolerance: float = field(default=1e-10, metadata=dict(static=True))
    newton_max_iterations: int = field(default=20, metadata=dict(static=True))
    relaxation_factor: float = field(default=2.0, metadata=dict(static=True))
    batch_size: int | None = field(default=None, metadata=dict(static=True))
    """Number of nodes processed in lockstep. None vectorizes all nodes."""
    check_limited_state: bool = field(default=False, metadata=dict(static=True))
    """If True, the admissibility flag also requires U + t*P to be in bounds."""

    def __post_init__(self):
        if not self.newton_tolerance > 0.0:
            raise ValueError(
                f"newton_tolerance must be positive, got {self.newton_tolerance}."
            )
        if self.newton_max_iterations < 1:
            raise ValueError(
                "newton_max_iterations must be >= 1, "
                f"got {self.newton_max_iterations}."
            )
        if self.relaxation_factor < 0.0:
            raise ValueError(
                "relaxation_factor must be non-negative, "
                f"got {self.relaxation_factor}."
            )
        if self.batch_size is not None and self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}.")


@jax.tree_util.register_dataclass
@dataclass(frozen=True, slots=True)
class LimiterResult:
    bounds: Bounds
    t: Float[Array, " n_nodes"]
    """Blending factor per node."""
    admissible: Bool[Array, " n_nodes"]
    """True if the low-order state of the node was inside its bounds."""
