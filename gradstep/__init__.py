"""gradstep - first-order optimizers for Flax NNX models."""

from . import config, manifolds, optim, params
from .config import AdamConfig, RiemannSGDConfig, RMSPropConfig, SGDConfig, create_config
from .optim import SGD, Adam, Optimizer, RiemannSGD, RMSProp

__all__ = [
    "SGD",
    "Adam",
    "AdamConfig",
    "Optimizer",
    "RMSProp",
    "RMSPropConfig",
    "RiemannSGD",
    "RiemannSGDConfig",
    "SGDConfig",
    "config",
    "create_config",
    "manifolds",
    "optim",
    "params",
]
