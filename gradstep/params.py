"""Keyed traversal of parameter, gradient and accumulator pytrees.

Every optimizer walks the same stable enumeration of slots: the key paths
produced by ``jax.tree_util.tree_flatten_with_path``, rendered as strings with
``jax.tree_util.keystr``. Parameters, gradients and each accumulator tree are
flattened in this order so that corresponding slots line up.

Example:
    >>> import jax.numpy as jnp
    >>> from gradstep.params import check_compatible, param_spec
    >>>
    >>> params = {"w": jnp.zeros((2, 3)), "b": jnp.zeros((3,))}
    >>> spec = param_spec(params)
    >>> spec.keys
    ("['b']", "['w']")
    >>> check_compatible(spec, {"w": jnp.ones((2, 3)), "b": jnp.ones((3,))}, "gradient")
"""

import math
from typing import Any, NamedTuple

import jax.numpy as jnp
from jax import tree_util
from jaxtyping import Array


class ParamSpec(NamedTuple):
    """Snapshot of the slot layout of a parameter pytree.

    Attributes
    ----------
    keys : tuple of str
        Slot keys in traversal order
    shapes : tuple of tuple of int
        Shape of each slot
    dtypes : tuple of dtype
        Dtype of each slot
    """

    keys: tuple[str, ...]
    shapes: tuple[tuple[int, ...], ...]
    dtypes: tuple[Any, ...]

    @property
    def num_slots(self) -> int:
        """Number of parameter tensors."""
        return len(self.keys)

    @property
    def size(self) -> int:
        """Total number of scalar elements across all slots."""
        return sum(math.prod(shape) for shape in self.shapes)


def flatten(tree: Any) -> tuple[list[str], list[Array], Any]:
    """Flatten a pytree into its slot keys, leaves and treedef.

    Args:
        tree: Parameter, gradient or accumulator pytree

    Returns:
        Tuple of (keys, leaves, treedef), keys and leaves in traversal order
    """
    path_leaves, treedef = tree_util.tree_flatten_with_path(tree)
    keys = [tree_util.keystr(path) for path, _ in path_leaves]
    leaves = [leaf for _, leaf in path_leaves]
    return keys, leaves, treedef


def param_spec(tree: Any) -> ParamSpec:
    """Record the key set, shapes and dtypes of a pytree."""
    keys, leaves, _ = flatten(tree)
    return ParamSpec(
        keys=tuple(keys),
        shapes=tuple(tuple(jnp.shape(leaf)) for leaf in leaves),
        dtypes=tuple(jnp.result_type(leaf) for leaf in leaves),
    )


def check_compatible(expected: ParamSpec, tree: Any, what: str = "gradient") -> None:
    """Fail fast unless ``tree`` has exactly the expected keys and shapes.

    Args:
        expected: Layout the tree must match
        tree: Pytree to check
        what: Name of the tree used in error messages

    Raises:
        ValueError: If the key sets differ or any slot has a different shape
    """
    actual = param_spec(tree)
    if actual.keys != expected.keys:
        missing = sorted(set(expected.keys) - set(actual.keys))
        unexpected = sorted(set(actual.keys) - set(expected.keys))
        if not missing and not unexpected:
            raise ValueError(f"{what} slots are ordered differently from the parameters")
        raise ValueError(f"{what} keys do not match the parameters: missing {missing}, unexpected {unexpected}")

    for key, want, got in zip(expected.keys, expected.shapes, actual.shapes, strict=True):
        if want != got:
            raise ValueError(f"{what} shape mismatch at {key}: expected {want}, got {got}")


def align_to(params: Any, tree: Any, what: str = "gradient") -> Any:
    """Rebuild ``tree`` with the tree structure of ``params``.

    The leaves of ``tree`` are validated against ``params`` first, so gradient,
    parameter and accumulator trees end up sharing one treedef even when the
    gradient comes from a different container type.

    Raises:
        ValueError: If the key sets or shapes differ
    """
    check_compatible(param_spec(params), tree, what)
    treedef = tree_util.tree_structure(params)
    return tree_util.tree_unflatten(treedef, tree_util.tree_leaves(tree))


def zeros_like(tree: Any) -> Any:
    """Zero-initialized accumulator with the same structure as ``tree``."""
    return tree_util.tree_map(lambda p: jnp.zeros_like(p), tree)
