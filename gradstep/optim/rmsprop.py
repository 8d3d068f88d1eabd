"""RMSProp optimizer.

Algorithm (per parameter slot):
    1. Update running mean of squared gradients: ms = rho * ms + (1 - rho) * grad^2
    2. Parameter step: param -= lr * grad / (sqrt(ms) + eps)

``eps`` keeps the step finite when ``ms`` is exactly zero, e.g. on a first step
with a zero gradient or for ``rho=1`` where ``ms`` never leaves zero.
"""

from typing import Any, NamedTuple, cast

import jax.numpy as jnp
import optax
from flax import nnx
from jax import tree_util

from ..config import RMSPropConfig
from ..params import param_spec, zeros_like
from .base import apply_transform, log_construction, model_params, warn_inert_decay


class RMSPropState(NamedTuple):
    """State for RMSProp.

    Attributes
    ----------
    mean_square : Any
        Pytree of running means of squared gradients
    """

    mean_square: Any


def rmsprop(
    learning_rate: float = 1e-3,
    rho: float = 0.9,
    epsilon: float = 1e-8,
) -> optax.GradientTransformation:
    """Create RMSProp as an Optax GradientTransformation.

    Parameters
    ----------
    learning_rate : float, default=1e-3
        Step size
    rho : float, default=0.9
        Decay rate of the running mean of squared gradients
    epsilon : float, default=1e-8
        Added to the root mean square before dividing

    Returns
    -------
    optimizer : optax.GradientTransformation
        Transformation whose updates are parameter deltas
    """

    def init_fn(params: Any) -> RMSPropState:
        return RMSPropState(mean_square=zeros_like(params))

    def update_fn(
        updates: Any,
        state: RMSPropState,
        params: Any | None = None,
    ) -> tuple[Any, RMSPropState]:
        del params
        mean_square = tree_util.tree_map(
            lambda g, ms: rho * ms + (1 - rho) * g**2,
            updates,
            state.mean_square,
        )
        deltas = tree_util.tree_map(
            lambda g, ms: -learning_rate * g / (jnp.sqrt(ms) + epsilon),
            updates,
            mean_square,
        )
        return deltas, RMSPropState(mean_square=mean_square)

    return optax.GradientTransformation(init_fn, cast(Any, update_fn))


class RMSProp:
    """Stateful RMSProp bound to the parameter layout of one model.

    Args:
        model: Flax NNX model whose ``nnx.Param`` leaves are optimized
        learning_rate: Step size (default: 1e-3)
        rho: Decay rate in [0, 1] (default: 0.9)
        epsilon: Numerical stability constant (default: 1e-8)
        decay: Reserved, must be non-negative (default: 0.0)

    Raises:
        ValueError: If a hyperparameter is out of range
    """

    def __init__(
        self,
        model: nnx.Module,
        learning_rate: float = 1e-3,
        rho: float = 0.9,
        epsilon: float = 1e-8,
        decay: float = 0.0,
    ) -> None:
        self.config = RMSPropConfig(learning_rate=learning_rate, rho=rho, epsilon=epsilon, decay=decay)
        warn_inert_decay("RMSProp", decay)

        params = model_params(model)
        self._spec = param_spec(params)
        self._tx = rmsprop(learning_rate, rho, epsilon)
        self.state = self._tx.init(params)
        log_construction("RMSProp", self.config, self._spec)

    @classmethod
    def from_config(cls, model: nnx.Module, config: RMSPropConfig) -> "RMSProp":
        return cls(model, config.learning_rate, config.rho, config.epsilon, config.decay)

    @property
    def learning_rate(self) -> float:
        return self.config.learning_rate

    @property
    def mean_square(self) -> Any:
        return self.state.mean_square

    def fit(self, model: nnx.Module, gradient: Any) -> None:
        self.state = apply_transform(self._tx, self.state, self._spec, model, gradient)
