"""Models whose parameters live on a manifold.

``RiemannSGD`` does not do arithmetic on parameters itself. It relies on the
model to provide two capabilities, described by the ``ManifoldModel``
protocol:

- ``tangent_vector(gradient)``: turn a Euclidean gradient (cotangent) into a
  tangent vector at the current parameters
- ``move_along(direction)``: move the parameters, in place, along a tangent
  vector (exponential map or retraction)

``ManifoldModule`` implements both for Flax NNX modules whose ``nnx.Param``
leaves all live on one manifold.

Example:
    >>> import jax.numpy as jnp
    >>> from flax import nnx
    >>> from gradstep.manifolds import ManifoldPoint, Poincare
    >>> from gradstep.optim import RiemannSGD
    >>>
    >>> point = ManifoldPoint(jnp.array([0.1, 0.2]), Poincare(), c=1.0)
    >>> target = jnp.array([-0.3, 0.4])
    >>>
    >>> def loss_fn(model):
    ...     return model.manifold.dist(model.x[...], target, model.c) ** 2
    >>>
    >>> optimizer = RiemannSGD(learning_rate=0.1)
    >>> optimizer.fit(point, nnx.grad(loss_fn)(point))
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from flax import nnx
from jax import tree_util
from jaxtyping import Array, Float

from ..params import align_to
from .protocol import Manifold


@runtime_checkable
class ManifoldModel(Protocol):
    """Capability required by ``RiemannSGD``."""

    def tangent_vector(self, gradient: Any) -> Any: ...

    def move_along(self, direction: Any) -> None: ...


class ManifoldModule(nnx.Module):
    """Base class for NNX modules whose parameters all live on ``manifold``.

    Every ``nnx.Param`` leaf is treated as a batch of manifold points along its
    last axis. Subclasses call ``super().__init__`` and then create their
    parameters as usual.

    Args:
        manifold: Geometry of the parameters (e.g. ``Euclidean()``, ``Poincare()``)
        c: Curvature passed to every manifold operation
        use_expmap: If True, move with the exponential map (exact geodesic).
            If False, use the retraction (first-order approximation, faster).
    """

    def __init__(self, manifold: Manifold, c: float = 1.0, use_expmap: bool = True) -> None:
        self.manifold = manifold
        self.c = c
        self.use_expmap = use_expmap

    def tangent_vector(self, gradient: Any) -> Any:
        """Convert a Euclidean gradient into the Riemannian gradient at the current parameters.

        Raises:
            ValueError: If the gradient does not match the parameter keys and shapes
        """
        params = nnx.state(self, nnx.Param)
        gradient = align_to(params, gradient, "gradient")
        return tree_util.tree_map(lambda g, p: self.manifold.egrad2rgrad(g, p, self.c), gradient, params)

    def move_along(self, direction: Any) -> None:
        """Move every parameter along its tangent direction and project back onto the manifold.

        Raises:
            ValueError: If the direction does not match the parameter keys and shapes
        """
        params = nnx.state(self, nnx.Param)
        direction = align_to(params, direction, "tangent")
        step = self.manifold.expmap if self.use_expmap else self.manifold.retraction
        moved = tree_util.tree_map(
            lambda v, p: self.manifold.proj(step(v, p, self.c), self.c),
            direction,
            params,
        )
        nnx.update(self, moved)


class ManifoldPoint(ManifoldModule):
    """A single parameter tensor ``x`` constrained to a manifold.

    Args:
        x: Initial point(s), projected onto the manifold, shape (..., dim)
        manifold: Geometry of ``x``
        c: Curvature (default: 1.0)
        use_expmap: Exponential map (True) or retraction (False) (default: True)
    """

    def __init__(
        self,
        x: Float[Array, "... dim"],
        manifold: Manifold,
        c: float = 1.0,
        use_expmap: bool = True,
    ) -> None:
        super().__init__(manifold, c=c, use_expmap=use_expmap)
        self.x = nnx.Param(manifold.proj(x, c))

    def __call__(self) -> Float[Array, "... dim"]:
        return self.x[...]
