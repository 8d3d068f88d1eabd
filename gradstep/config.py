"""Hyperparameter records for the gradstep optimizers.

Each optimizer is configured by an immutable dataclass holding its named
hyperparameters with their documented defaults. The records are:
- Immutable (flax ``struct.dataclass``) so a running optimizer cannot be retuned by accident
- Validated once, in ``__post_init__``; invalid values raise ``ValueError``
- Static pytrees (every field has ``pytree_node=False``), so they can be closed over by ``jax.jit``

``decay`` is accepted, validated and stored by the flat-space configs but is not
consumed by any update rule. Schedules are expected to be applied externally.
"""

from typing import Any

from flax import struct


def _require_non_negative(name: str, value: float) -> None:
    if not value >= 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def _require_unit_interval(name: str, value: float) -> None:
    if not 0 <= value <= 1:
        raise ValueError(f"{name} must be between 0 and 1, got {value}")


@struct.dataclass
class SGDConfig:
    """Hyperparameters for stochastic gradient descent with momentum.

    Attributes
    ----------
    learning_rate : float, default=0.01
        Step size
    momentum : float, default=0.0
        Velocity decay coefficient (0 disables momentum)
    decay : float, default=0.0
        Reserved, not applied by the update rule
    nesterov : bool, default=False
        Apply the Nesterov look-ahead correction
    """

    learning_rate: float = struct.field(pytree_node=False, default=0.01)
    momentum: float = struct.field(pytree_node=False, default=0.0)
    decay: float = struct.field(pytree_node=False, default=0.0)
    nesterov: bool = struct.field(pytree_node=False, default=False)

    def __post_init__(self):
        _require_non_negative("learning_rate", self.learning_rate)
        _require_non_negative("momentum", self.momentum)
        _require_non_negative("decay", self.decay)


@struct.dataclass
class RMSPropConfig:
    """Hyperparameters for RMSProp.

    Attributes
    ----------
    learning_rate : float, default=1e-3
        Step size
    rho : float, default=0.9
        Decay rate of the running mean of squared gradients
    epsilon : float, default=1e-8
        Added to the denominator to avoid division by zero
    decay : float, default=0.0
        Reserved, not applied by the update rule
    """

    learning_rate: float = struct.field(pytree_node=False, default=1e-3)
    rho: float = struct.field(pytree_node=False, default=0.9)
    epsilon: float = struct.field(pytree_node=False, default=1e-8)
    decay: float = struct.field(pytree_node=False, default=0.0)

    def __post_init__(self):
        _require_non_negative("learning_rate", self.learning_rate)
        _require_unit_interval("rho", self.rho)
        _require_non_negative("epsilon", self.epsilon)
        _require_non_negative("decay", self.decay)


@struct.dataclass
class AdamConfig:
    """Hyperparameters for Adam.

    Attributes
    ----------
    learning_rate : float, default=1e-3
        Step size
    beta1 : float, default=0.9
        Exponential decay rate for first moment estimates
    beta2 : float, default=0.999
        Exponential decay rate for second moment estimates
    epsilon : float, default=1e-8
        Small constant for numerical stability
    decay : float, default=0.0
        Reserved, not applied by the update rule
    """

    learning_rate: float = struct.field(pytree_node=False, default=1e-3)
    beta1: float = struct.field(pytree_node=False, default=0.9)
    beta2: float = struct.field(pytree_node=False, default=0.999)
    epsilon: float = struct.field(pytree_node=False, default=1e-8)
    decay: float = struct.field(pytree_node=False, default=0.0)

    def __post_init__(self):
        _require_non_negative("learning_rate", self.learning_rate)
        _require_unit_interval("beta1", self.beta1)
        _require_unit_interval("beta2", self.beta2)
        _require_non_negative("epsilon", self.epsilon)
        _require_non_negative("decay", self.decay)


@struct.dataclass
class RiemannSGDConfig:
    """Hyperparameters for Riemannian SGD.

    Attributes
    ----------
    learning_rate : float, default=0.01
        Length multiplier applied to the negative tangent direction
    """

    learning_rate: float = struct.field(pytree_node=False, default=0.01)

    def __post_init__(self):
        _require_non_negative("learning_rate", self.learning_rate)


CONFIGS: dict[str, type] = {
    "sgd": SGDConfig,
    "rmsprop": RMSPropConfig,
    "adam": AdamConfig,
    "riemann_sgd": RiemannSGDConfig,
}


def create_config(name: str, **kwargs: Any):
    """Create a validated hyperparameter record by algorithm name.

    Args:
        name: One of 'sgd', 'rmsprop', 'adam' or 'riemann_sgd'
        **kwargs: Hyperparameters overriding the defaults

    Returns:
        Config instance for the requested algorithm

    Raises:
        ValueError: If the name is unknown or a hyperparameter is out of range
    """
    if name not in CONFIGS:
        raise ValueError(f"Unknown optimizer: {name}. Available optimizers: {', '.join(CONFIGS)}")
    return CONFIGS[name](**kwargs)
