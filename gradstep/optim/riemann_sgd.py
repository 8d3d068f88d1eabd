"""Riemannian SGD.

Treats the model as a single point on a curved parameter manifold. The model
supplies the geometry through the ``ManifoldModel`` capability; the optimizer
only scales the direction:

    1. Riemannian gradient: tangent = model.tangent_vector(gradient)
    2. Descent direction:   direction = lr * (0 - tangent)
    3. Move on manifold:    model.move_along(direction)

There is no accumulator state. On a Euclidean model, where moving is plain
addition, each step equals ``SGD`` with ``momentum=0``.

References
----------
Bonnabel, Silvère. "Stochastic gradient descent on Riemannian manifolds."
    IEEE Transactions on Automatic Control 58.9 (2013).
"""

from typing import Any

import jax.numpy as jnp
from flax import nnx
from jax import tree_util

from ..config import RiemannSGDConfig
from ..manifolds.model import ManifoldModel
from ..params import check_compatible, param_spec
from .base import log_construction


class RiemannSGD:
    """Stateless Riemannian gradient descent.

    Args:
        learning_rate: Step length multiplier (default: 0.01)

    Raises:
        ValueError: If ``learning_rate`` is negative
    """

    def __init__(self, learning_rate: float = 0.01) -> None:
        self.config = RiemannSGDConfig(learning_rate=learning_rate)
        log_construction("RiemannSGD", self.config)

    @classmethod
    def from_config(cls, config: RiemannSGDConfig) -> "RiemannSGD":
        return cls(config.learning_rate)

    @property
    def learning_rate(self) -> float:
        return self.config.learning_rate

    def fit(self, model: ManifoldModel, gradient: Any) -> None:
        """Move ``model`` one step against ``gradient`` along its manifold.

        Raises:
            TypeError: If ``model`` does not provide ``tangent_vector`` and ``move_along``
            ValueError: If ``model`` is an NNX module and the gradient does not match its parameters
        """
        if not isinstance(model, ManifoldModel):
            raise TypeError(
                f"RiemannSGD requires a model with tangent_vector() and move_along(), got {type(model).__name__}"
            )
        if isinstance(model, nnx.Module):
            check_compatible(param_spec(nnx.state(model, nnx.Param)), gradient, "gradient")

        lr = self.learning_rate
        tangent = model.tangent_vector(gradient)
        direction = tree_util.tree_map(lambda t: lr * (jnp.zeros_like(t) - t), tangent)
        model.move_along(direction)
