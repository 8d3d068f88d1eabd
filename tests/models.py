"""Small NNX models and gradient helpers shared by the optimizer tests."""

import jax.numpy as jnp
from flax import nnx
from jax import tree_util


class Vector(nnx.Module):
    """A model with a single parameter tensor ``x``."""

    def __init__(self, value, dtype=jnp.float32):
        self.x = nnx.Param(jnp.asarray(value, dtype=dtype))

    def __call__(self):
        return self.x[...]


class Pair(nnx.Module):
    """A model with two parameter tensors of different shapes."""

    def __init__(self, a, b, dtype=jnp.float32):
        self.a = nnx.Param(jnp.asarray(a, dtype=dtype))
        self.b = nnx.Param(jnp.asarray(b, dtype=dtype))


class Regressor(nnx.Module):
    """Linear layer followed by a learned elementwise scale."""

    def __init__(self, in_features: int, out_features: int, *, rngs: nnx.Rngs):
        self.dense = nnx.Linear(in_features, out_features, rngs=rngs)
        self.scale = nnx.Param(jnp.ones((out_features,), dtype=jnp.float32))

    def __call__(self, x):
        return self.dense(x) * self.scale[...]


def params_of(model: nnx.Module):
    return nnx.state(model, nnx.Param)


def constant_gradient(model: nnx.Module, value: float):
    """Gradient with every slot filled with ``value``."""
    return tree_util.tree_map(lambda p: jnp.full_like(p, value), params_of(model))


def mse_loss(model: nnx.Module, x, y):
    return jnp.mean((model(x) - y) ** 2)
