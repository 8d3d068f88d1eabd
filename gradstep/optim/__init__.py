"""First-order optimizers for Flax NNX models.

This package provides SGD (momentum / Nesterov), RMSProp, Adam and a
manifold-aware Riemannian SGD. Every optimizer satisfies the ``Optimizer``
protocol: a read-only ``learning_rate`` and ``fit(model, gradient)``, which
advances the model's parameters by one step in place.

Key Features:
- Accumulators zero-initialized from the model at construction and owned by the optimizer
- Gradient keys and shapes checked against the model on every step
- Flat-space update rules also exposed as Optax GradientTransformations
- Riemannian SGD delegates geometry to the model (``ManifoldModel``)

Example:
    >>> from flax import nnx
    >>> from gradstep.optim import Adam
    >>>
    >>> model = nnx.Linear(4, 2, rngs=nnx.Rngs(0))
    >>> optimizer = Adam(model, learning_rate=1e-3)
    >>> grads = nnx.grad(loss_fn)(model, x, y)
    >>> optimizer.fit(model, grads)
"""

from .adam import Adam, AdamState, adam
from .base import Optimizer
from .riemann_sgd import RiemannSGD
from .rmsprop import RMSProp, RMSPropState, rmsprop
from .sgd import SGD, SGDState, sgd

__all__ = [
    "SGD",
    "Adam",
    "AdamState",
    "Optimizer",
    "RMSProp",
    "RMSPropState",
    "RiemannSGD",
    "SGDState",
    "adam",
    "rmsprop",
    "sgd",
]
