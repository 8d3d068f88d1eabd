"""Optimizer Protocol and the shared flat-space update path.

``Optimizer`` is a ``typing.Protocol``: ``SGD``, ``RMSProp``, ``Adam`` and
``RiemannSGD`` satisfy it structurally and share no base class or state.
"""

from __future__ import annotations

import warnings
from typing import Any, Protocol, runtime_checkable

import optax
from flax import nnx

from ..log import get_logger
from ..params import ParamSpec, align_to, check_compatible

logger = get_logger(__name__)


@runtime_checkable
class Optimizer(Protocol):
    """Structural protocol for optimizers.

    An optimizer owns its accumulator state and advances a model by one step
    per ``fit`` call, mutating the model's parameters in place.
    """

    @property
    def learning_rate(self) -> float: ...

    def fit(self, model: Any, gradient: Any) -> None: ...


def model_params(model: nnx.Module) -> nnx.State:
    """Return the trainable parameter state of a Flax NNX model.

    Raises
    ------
    TypeError
        If ``model`` is not an ``nnx.Module``
    """
    if not isinstance(model, nnx.Module):
        raise TypeError(f"model must be a flax.nnx.Module, got {type(model).__name__}")
    return nnx.state(model, nnx.Param)


def apply_transform(
    tx: optax.GradientTransformation,
    state: optax.OptState,
    spec: ParamSpec,
    model: nnx.Module,
    gradient: Any,
) -> optax.OptState:
    """Run one step of ``tx`` and write the new parameters back into ``model``.

    The model's parameters must still match the layout ``spec`` recorded when
    the optimizer was built, and the gradient must match the parameters.
    Nothing is written to the model if either check fails.

    Returns
    -------
    new_state : optax.OptState
        Optimizer state after the step

    Raises
    ------
    ValueError
        If parameter or gradient keys or shapes do not match
    """
    params = model_params(model)
    check_compatible(spec, params, "parameter")
    gradient = align_to(params, gradient, "gradient")
    updates, new_state = tx.update(gradient, state, params)
    nnx.update(model, optax.apply_updates(params, updates))
    return new_state


def warn_inert_decay(name: str, decay: float) -> None:
    """Warn that a non-zero ``decay`` has no effect on the update rule."""
    if decay > 0:
        warnings.warn(
            f"{name}: decay={decay} is reserved and not applied by the update rule; "
            "decay the learning rate externally instead.",
            UserWarning,
            stacklevel=3,
        )


def log_construction(name: str, config: Any, spec: ParamSpec | None = None) -> None:
    if spec is None:
        logger.debug("%s created with %s", name, config)
    else:
        logger.debug("%s created with %s over %d slots (%d elements)", name, config, spec.num_slots, spec.size)
