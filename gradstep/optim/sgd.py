"""Stochastic gradient descent with momentum and Nesterov correction.

Algorithm (per parameter slot):
    1. Update velocity: v = momentum * v - lr * grad
    2. Parameter step:
         nesterov:  param += momentum * v - lr * grad
         otherwise: param += v

With ``momentum=0`` this is plain gradient descent, ``param -= lr * grad``.
"""

from typing import Any, NamedTuple, cast

import optax
from flax import nnx
from jax import tree_util

from ..config import SGDConfig
from ..params import param_spec, zeros_like
from .base import apply_transform, log_construction, model_params, warn_inert_decay


class SGDState(NamedTuple):
    """State for SGD.

    Attributes
    ----------
    velocity : Any
        Pytree of velocity terms, same structure as parameters
    """

    velocity: Any


def sgd(
    learning_rate: float = 0.01,
    momentum: float = 0.0,
    nesterov: bool = False,
) -> optax.GradientTransformation:
    """Create SGD as an Optax GradientTransformation.

    Parameters
    ----------
    learning_rate : float, default=0.01
        Step size
    momentum : float, default=0.0
        Momentum coefficient (0 for no momentum, typically 0.9)
    nesterov : bool, default=False
        If True, apply the Nesterov look-ahead to the parameter step

    Returns
    -------
    optimizer : optax.GradientTransformation
        Transformation whose updates are parameter deltas

    Example
    -------
    >>> import jax.numpy as jnp
    >>> import optax
    >>> from gradstep.optim import sgd
    >>>
    >>> params = {"w": jnp.ones(3)}
    >>> tx = sgd(learning_rate=0.1, momentum=0.9)
    >>> state = tx.init(params)
    >>> updates, state = tx.update({"w": jnp.ones(3)}, state)
    >>> params = optax.apply_updates(params, updates)
    """

    def init_fn(params: Any) -> SGDState:
        return SGDState(velocity=zeros_like(params))

    def update_fn(
        updates: Any,
        state: SGDState,
        params: Any | None = None,
    ) -> tuple[Any, SGDState]:
        del params

        def update_single_leaf(grad_value, velocity_value):
            new_velocity = momentum * velocity_value - learning_rate * grad_value
            if nesterov:
                delta = momentum * new_velocity - learning_rate * grad_value
            else:
                delta = new_velocity
            return (delta, new_velocity)

        results = tree_util.tree_map(update_single_leaf, updates, state.velocity)

        # Each leaf in results is a tuple (delta, new_velocity)
        deltas = tree_util.tree_map(lambda r: r[0], results, is_leaf=lambda x: isinstance(x, tuple))
        new_velocity = tree_util.tree_map(lambda r: r[1], results, is_leaf=lambda x: isinstance(x, tuple))

        return deltas, SGDState(velocity=new_velocity)

    return optax.GradientTransformation(init_fn, cast(Any, update_fn))


class SGD:
    """Stateful SGD bound to the parameter layout of one model.

    The velocity is zero-initialized from ``model`` at construction and carried
    across ``fit`` calls.

    Args:
        model: Flax NNX model whose ``nnx.Param`` leaves are optimized
        learning_rate: Step size (default: 0.01)
        momentum: Momentum coefficient (default: 0.0)
        decay: Reserved, must be non-negative (default: 0.0)
        nesterov: Use Nesterov momentum (default: False)

    Raises:
        ValueError: If a hyperparameter is out of range

    Examples:
        >>> from flax import nnx
        >>> from gradstep.optim import SGD
        >>>
        >>> model = nnx.Linear(4, 2, rngs=nnx.Rngs(0))
        >>> optimizer = SGD(model, learning_rate=0.1, momentum=0.9, nesterov=True)
        >>> grads = nnx.grad(loss_fn)(model, x, y)
        >>> optimizer.fit(model, grads)
    """

    def __init__(
        self,
        model: nnx.Module,
        learning_rate: float = 0.01,
        momentum: float = 0.0,
        decay: float = 0.0,
        nesterov: bool = False,
    ) -> None:
        self.config = SGDConfig(learning_rate=learning_rate, momentum=momentum, decay=decay, nesterov=nesterov)
        warn_inert_decay("SGD", decay)

        params = model_params(model)
        self._spec = param_spec(params)
        self._tx = sgd(learning_rate, momentum, nesterov)
        self.state = self._tx.init(params)
        log_construction("SGD", self.config, self._spec)

    @classmethod
    def from_config(cls, model: nnx.Module, config: SGDConfig) -> "SGD":
        return cls(model, config.learning_rate, config.momentum, config.decay, config.nesterov)

    @property
    def learning_rate(self) -> float:
        return self.config.learning_rate

    @property
    def velocity(self) -> Any:
        return self.state.velocity

    def fit(self, model: nnx.Module, gradient: Any) -> None:
        """Advance ``model`` by one step along ``gradient``, in place."""
        self.state = apply_transform(self._tx, self.state, self._spec, model, gradient)
