from __future__ import annotations

from typing import Iterable

import jax.numpy as jnp
import numpy as np

from .stencil_types import Stencil


def build_stencil(
    n_nodes: int,
    edges: Iterable[tuple[int, int]],
    c_ij: np.ndarray,
    beta_ij: np.ndarray,
    measure: np.ndarray,
) -> Stencil:
    """Build a padded Stencil from a list of undirected edges.

    For every edge (i, j) with coefficients c_ij and beta_ij the reverse
    entry (j, i) is added with c_ji = -c_ij and beta_ji = beta_ij.

    Args:
        n_nodes: Number of nodes
        edges: Undirected edges (i, j), i != j, each listed once
        c_ij: Scaled edge vectors, shape (n_edges, dim)
        beta_ij: Edge weights, shape (n_edges,)
        measure: Per-node measure hd_i, shape (n_nodes,)

    Returns:
        Stencil with neighbors sorted in ascending order
    """
    edges_arr = np.asarray(list(edges), dtype=int).reshape(-1, 2)
    c_arr = np.asarray(c_ij, dtype=float)
    if c_arr.ndim == 1:
        c_arr = c_arr[:, None]
    beta_arr = np.asarray(beta_ij, dtype=float)
    measure_arr = np.asarray(measure, dtype=float)

    n_edges = edges_arr.shape[0]
    if c_arr.shape[0] != n_edges or beta_arr.shape != (n_edges,):
        raise ValueError(
            f"Edge data mismatch: {n_edges} edges, c_ij of shape {c_arr.shape}, "
            f"beta_ij of shape {beta_arr.shape}."
        )
    if measure_arr.shape != (n_nodes,):
        raise ValueError(
            f"measure must have shape ({n_nodes},), got {measure_arr.shape}."
        )
    if n_edges > 0:
        if edges_arr.min() < 0 or edges_arr.max() >= n_nodes:
            raise ValueError("Edge references a node index out of range.")
        if np.any(edges_arr[:, 0] == edges_arr[:, 1]):
            raise ValueError("Self loops are not allowed in a stencil.")

    dim = c_arr.shape[1] if n_edges > 0 else 1

    # Directed entries (i -> j) and (j -> i)
    rows: list[list[tuple[int, np.ndarray, float]]] = [[] for _ in range(n_nodes)]
    seen: set[tuple[int, int]] = set()
    for (i, j), c, beta in zip(edges_arr, c_arr, beta_arr):
        key = (min(i, j), max(i, j))
        if key in seen:
            raise ValueError(f"Duplicate edge ({i}, {j}).")
        seen.add(key)
        rows[i].append((int(j), c, float(beta)))
        rows[j].append((int(i), -c, float(beta)))

    max_row = max([len(r) for r in rows] + [1])

    neighbors = np.tile(np.arange(n_nodes)[:, None], (1, max_row))
    mask = np.zeros((n_nodes, max_row), dtype=bool)
    c_padded = np.zeros((n_nodes, max_row, dim))
    beta_padded = np.zeros((n_nodes, max_row))

    for i, row in enumerate(rows):
        for k, (j, c, beta) in enumerate(sorted(row, key=lambda entry: entry[0])):
            neighbors[i, k] = j
            mask[i, k] = True
            c_padded[i, k] = c
            beta_padded[i, k] = beta

    return Stencil(
        neighbors=jnp.asarray(neighbors),
        mask=jnp.asarray(mask),
        c_ij=jnp.asarray(c_padded),
        beta_ij=jnp.asarray(beta_padded),
        measure=jnp.asarray(measure_arr),
    )


def build_periodic_1d_stencil(
    n_nodes: int, length: float = 1.0, wave_speed: float = 1.0
) -> Stencil:
    """Stencil of P1 elements on a uniform periodic 1D grid.

    c_ij = +-1/2 is scaled by d_ij = wave_speed * |c_ij|, the stiffness
    entry beta_ij = -1/dx is used as relaxation weight and
    hd_i = dx / length.
    """
    if n_nodes < 3:
        raise ValueError(f"A periodic 1D stencil needs >= 3 nodes, got {n_nodes}.")
    if wave_speed <= 0.0:
        raise ValueError(f"wave_speed must be positive, got {wave_speed}.")

    dx = length / n_nodes
    edges = [(i, (i + 1) % n_nodes) for i in range(n_nodes)]
    c_ij = np.full((n_nodes, 1), 1.0 / wave_speed)
    beta_ij = np.full(n_nodes, -1.0 / dx)
    measure = np.full(n_nodes, dx / length)

    return build_stencil(n_nodes, edges, c_ij, beta_ij, measure)
