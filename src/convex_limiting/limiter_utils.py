from typing import Callable

import jax


def map_nodes(f: Callable, xs, batch_size: int | None):
    """Apply f to every node of xs (leading axis).

    With batch_size=None all nodes are vectorized at once. Otherwise
    batch_size nodes are processed in lockstep and the batches run
    sequentially, which bounds the memory footprint.
    """
    if batch_size is None:
        return jax.vmap(f)(xs)
    return jax.lax.map(f, xs, batch_size=batch_size)
