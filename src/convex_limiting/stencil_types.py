from dataclasses import dataclass

import jax
from jaxtyping import Array, Bool, Float, Int


@jax.tree_util.register_dataclass
@dataclass(frozen=True, slots=True)
class Stencil:
    """Padded row storage of the sparsity graph and its edge geometry.

    Row i holds the neighbors j != i of node i in ascending order. Unused
    slots at the end of a row point to node i itself and are masked out.
    """

    neighbors: Int[Array, "n_nodes max_row"]
    mask: Bool[Array, "n_nodes max_row"]
    c_ij: Float[Array, "n_nodes max_row dim"]
    """Scaled geometric edge vector."""
    beta_ij: Float[Array, "n_nodes max_row"]
    """Scalar edge weight used for density relaxation."""
    measure: Float[Array, " n_nodes"]
    """Local mesh-size measure hd_i = m_i / |Omega|."""

    @property
    def n_nodes(self) -> int:
        return self.neighbors.shape[0]

    @property
    def max_row(self) -> int:
        return self.neighbors.shape[1]

    @property
    def dim(self) -> int:
        return self.c_ij.shape[2]
