"""Adam optimizer.

Algorithm:
    1. Increment the step count once per update: t = t + 1
    2. Bias corrections: bc1 = 1 - beta1^t, bc2 = 1 - beta2^t
    3. Step size: step = lr * sqrt(bc2) / bc1
    4. For each parameter slot:
         m1 = beta1 * m1 + (1 - beta1) * grad
         m2 = beta2 * m2 + (1 - beta2) * grad^2
         param -= step * m1 / (sqrt(m2) + eps)

The step count is shared by all slots, so every slot of one update sees the
same bias correction.

References
----------
Kingma, Diederik P., and Jimmy Ba. "Adam: A method for stochastic optimization."
    arXiv preprint arXiv:1412.6980 (2014).
"""

from typing import Any, NamedTuple, cast

import jax.numpy as jnp
import optax
from flax import nnx
from jax import tree_util

from ..config import AdamConfig
from ..params import param_spec, zeros_like
from .base import apply_transform, log_construction, model_params, warn_inert_decay


class AdamState(NamedTuple):
    """State for Adam.

    Attributes
    ----------
    m1 : Any
        Pytree of first moment estimates (exponential moving average of gradients)
    m2 : Any
        Pytree of second moment estimates (exponential moving average of squared gradients)
    count : Array
        Number of completed updates, used for bias correction
    """

    m1: Any
    m2: Any
    count: jnp.ndarray


def adam(
    learning_rate: float = 1e-3,
    beta1: float = 0.9,
    beta2: float = 0.999,
    epsilon: float = 1e-8,
) -> optax.GradientTransformation:
    """Create Adam as an Optax GradientTransformation.

    Parameters
    ----------
    learning_rate : float, default=1e-3
        Step size
    beta1 : float, default=0.9
        Exponential decay rate for first moment estimates
    beta2 : float, default=0.999
        Exponential decay rate for second moment estimates
    epsilon : float, default=1e-8
        Small constant for numerical stability

    Returns
    -------
    optimizer : optax.GradientTransformation
        Transformation whose updates are parameter deltas

    Example
    -------
    >>> import optax
    >>> from flax import nnx
    >>> from gradstep.optim import adam
    >>>
    >>> model = nnx.Linear(4, 2, rngs=nnx.Rngs(0))
    >>> optimizer = nnx.Optimizer(model, adam(learning_rate=1e-3), wrt=nnx.Param)
    """

    def init_fn(params: Any) -> AdamState:
        m1 = zeros_like(params)
        m2 = zeros_like(params)
        count = jnp.zeros([], jnp.int32)
        return AdamState(m1=m1, m2=m2, count=count)

    def update_fn(
        updates: Any,
        state: AdamState,
        params: Any | None = None,
    ) -> tuple[Any, AdamState]:
        """Apply one Adam update.

        Raises
        ------
        ValueError
            If gradient and moment pytrees do not share the same structure
        """
        del params
        count_inc = state.count + 1

        bias_correction1 = 1 - beta1**count_inc
        bias_correction2 = 1 - beta2**count_inc
        step_size = learning_rate * jnp.sqrt(bias_correction2) / bias_correction1

        grad_leaves, treedef = tree_util.tree_flatten(updates)
        m1_leaves, treedef_m1 = tree_util.tree_flatten(state.m1)
        m2_leaves, treedef_m2 = tree_util.tree_flatten(state.m2)

        if not (treedef == treedef_m1 == treedef_m2):
            raise ValueError("Gradient and moment pytrees must share the same structure.")

        delta_leaves = []
        new_m1_leaves = []
        new_m2_leaves = []

        for grad_value, m1_value, m2_value in zip(grad_leaves, m1_leaves, m2_leaves, strict=True):
            new_m1 = beta1 * m1_value + (1 - beta1) * grad_value
            new_m2 = beta2 * m2_value + (1 - beta2) * (grad_value**2)

            denom = jnp.sqrt(new_m2) + epsilon
            step_cast = step_size.astype(new_m1.dtype)
            delta_leaves.append(-step_cast * new_m1 / denom)
            new_m1_leaves.append(new_m1)
            new_m2_leaves.append(new_m2)

        deltas = tree_util.tree_unflatten(treedef, delta_leaves)
        new_m1 = tree_util.tree_unflatten(treedef, new_m1_leaves)
        new_m2 = tree_util.tree_unflatten(treedef, new_m2_leaves)

        return deltas, AdamState(m1=new_m1, m2=new_m2, count=count_inc)

    return optax.GradientTransformation(init_fn, cast(Any, update_fn))


class Adam:
    """Stateful Adam bound to the parameter layout of one model.

    Moments and step count are zero-initialized from ``model`` at construction.

    Args:
        model: Flax NNX model whose ``nnx.Param`` leaves are optimized
        learning_rate: Step size (default: 1e-3)
        beta1: First moment decay rate in [0, 1] (default: 0.9)
        beta2: Second moment decay rate in [0, 1] (default: 0.999)
        epsilon: Numerical stability constant (default: 1e-8)
        decay: Reserved, must be non-negative (default: 0.0)

    Raises:
        ValueError: If a hyperparameter is out of range

    Note:
        With ``beta1=1`` the first bias correction is zero and every step divides by zero.

    Examples:
        >>> from flax import nnx
        >>> from gradstep.optim import Adam
        >>>
        >>> model = nnx.Linear(4, 2, rngs=nnx.Rngs(0))
        >>> optimizer = Adam(model, learning_rate=1e-3)
        >>> for x, y in batches:
        ...     optimizer.fit(model, nnx.grad(loss_fn)(model, x, y))
        >>> int(optimizer.step)  # one per fit call
    """

    def __init__(
        self,
        model: nnx.Module,
        learning_rate: float = 1e-3,
        beta1: float = 0.9,
        beta2: float = 0.999,
        epsilon: float = 1e-8,
        decay: float = 0.0,
    ) -> None:
        self.config = AdamConfig(learning_rate=learning_rate, beta1=beta1, beta2=beta2, epsilon=epsilon, decay=decay)
        warn_inert_decay("Adam", decay)

        params = model_params(model)
        self._spec = param_spec(params)
        self._tx = adam(learning_rate, beta1, beta2, epsilon)
        self.state = self._tx.init(params)
        log_construction("Adam", self.config, self._spec)

    @classmethod
    def from_config(cls, model: nnx.Module, config: AdamConfig) -> "Adam":
        return cls(model, config.learning_rate, config.beta1, config.beta2, config.epsilon, config.decay)

    @property
    def learning_rate(self) -> float:
        return self.config.learning_rate

    @property
    def step(self) -> jnp.ndarray:
        """Number of completed ``fit`` calls."""
        return self.state.count

    @property
    def first_moment(self) -> Any:
        return self.state.m1

    @property
    def second_moment(self) -> Any:
        return self.state.m2

    def fit(self, model: nnx.Module, gradient: Any) -> None:
        self.state = apply_transform(self._tx, self.state, self._spec, model, gradient)
