"""Convex limiting for invariant-domain preserving schemes."""

from .state_algebra_types import StateAlgebra
from .state_algebra import build_euler_state_algebra
from .stencil_types import Stencil
from .stencil_utils import build_stencil, build_periodic_1d_stencil
from .limiter_types import Bounds, BoundsAccumulator, LimiterConfig, LimiterResult
from .limiter import limit, is_in_invariant_domain
from .limiter_sweep import sweep, blend, run

__all__ = [
    "StateAlgebra",
    "build_euler_state_algebra",
    "Stencil",
    "build_stencil",
    "build_periodic_1d_stencil",
    "Bounds",
    "BoundsAccumulator",
    "LimiterConfig",
    "LimiterResult",
    "limit",
    "is_in_invariant_domain",
    "sweep",
    "blend",
    "run",
]
