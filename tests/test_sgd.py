"""Tests for SGD with momentum and Nesterov correction."""

import jax.numpy as jnp
import optax
import pytest
from flax import nnx
from jax import tree_util

from gradstep.optim import SGD, Optimizer, sgd
from models import Pair, Regressor, Vector, constant_gradient, mse_loss, params_of


class TestSGDUpdate:
    @pytest.mark.parametrize("learning_rate", [0.0, 0.01, 0.5, 3.0])
    def test_zero_gradient_leaves_parameters_unchanged(self, learning_rate: float):
        model = Vector([1.5, -2.0, 0.25])
        optimizer = SGD(model, learning_rate=learning_rate)

        optimizer.fit(model, constant_gradient(model, 0.0))

        assert jnp.array_equal(model.x[...], jnp.array([1.5, -2.0, 0.25], dtype=jnp.float32))

    def test_plain_step(self, dtype):
        model = Vector([1.0, -1.0], dtype=dtype)
        optimizer = SGD(model, learning_rate=0.5)

        optimizer.fit(model, constant_gradient(model, 2.0))

        assert jnp.array_equal(model.x[...], jnp.array([0.0, -2.0], dtype=dtype))
        assert model.x[...].dtype == dtype

    def test_velocity_carries_over(self):
        model = Vector([0.0])
        optimizer = SGD(model, learning_rate=0.5, momentum=0.5)
        gradient = constant_gradient(model, 1.0)

        optimizer.fit(model, gradient)
        after_first = model.x[...]
        optimizer.fit(model, gradient)
        second_delta = model.x[...] - after_first

        # velocity: -0.5, then 0.5 * -0.5 - 0.5
        assert jnp.array_equal(after_first, jnp.array([-0.5], dtype=jnp.float32))
        assert jnp.array_equal(second_delta, jnp.array([-0.75], dtype=jnp.float32))

        fresh_model = Vector(after_first)
        fresh = SGD(fresh_model, learning_rate=0.5, momentum=0.5)
        fresh.fit(fresh_model, constant_gradient(fresh_model, 1.0))
        fresh_delta = fresh_model.x[...] - after_first

        assert not jnp.array_equal(second_delta, fresh_delta)

    def test_velocity_state(self):
        model = Vector([0.0, 0.0])
        optimizer = SGD(model, learning_rate=0.5, momentum=0.5)
        assert jnp.array_equal(tree_util.tree_leaves(optimizer.velocity)[0], jnp.zeros(2))

        optimizer.fit(model, constant_gradient(model, 1.0))

        assert jnp.array_equal(tree_util.tree_leaves(optimizer.velocity)[0], jnp.array([-0.5, -0.5]))

    def test_nesterov_step(self):
        model = Vector([0.0])
        optimizer = SGD(model, learning_rate=0.5, momentum=0.5, nesterov=True)

        optimizer.fit(model, constant_gradient(model, 1.0))

        # velocity -0.5, step 0.5 * -0.5 - 0.5
        assert jnp.array_equal(model.x[...], jnp.array([-0.75], dtype=jnp.float32))

    def test_nesterov_differs_from_momentum(self):
        plain_model, nesterov_model = Vector([1.0]), Vector([1.0])
        plain = SGD(plain_model, learning_rate=0.1, momentum=0.9)
        nesterov = SGD(nesterov_model, learning_rate=0.1, momentum=0.9, nesterov=True)

        for _ in range(2):
            plain.fit(plain_model, constant_gradient(plain_model, 1.0))
            nesterov.fit(nesterov_model, constant_gradient(nesterov_model, 1.0))

        assert not jnp.allclose(plain_model.x[...], nesterov_model.x[...])

    def test_nesterov_without_momentum_is_plain_sgd(self):
        plain_model, nesterov_model = Vector([1.0, 2.0]), Vector([1.0, 2.0])
        SGD(plain_model, learning_rate=0.25).fit(plain_model, constant_gradient(plain_model, 1.0))
        SGD(nesterov_model, learning_rate=0.25, nesterov=True).fit(nesterov_model, constant_gradient(nesterov_model, 1.0))

        assert jnp.array_equal(plain_model.x[...], nesterov_model.x[...])

    def test_all_slots_updated(self):
        model = Pair(jnp.ones((2, 2)), jnp.ones(3))
        SGD(model, learning_rate=0.5).fit(model, constant_gradient(model, 1.0))

        assert jnp.array_equal(model.a[...], jnp.full((2, 2), 0.5, dtype=jnp.float32))
        assert jnp.array_equal(model.b[...], jnp.full(3, 0.5, dtype=jnp.float32))

    def test_reduces_loss(self, regression_data):
        x, y = regression_data
        model = Regressor(3, 2, rngs=nnx.Rngs(0))
        optimizer = SGD(model, learning_rate=0.05, momentum=0.9)

        initial = mse_loss(model, x, y)
        for _ in range(50):
            optimizer.fit(model, nnx.grad(mse_loss)(model, x, y))

        assert mse_loss(model, x, y) < initial


class TestSGDErrors:
    def test_invalid_hyperparameters(self):
        model = Vector([0.0])
        with pytest.raises(ValueError):
            SGD(model, learning_rate=-0.1)
        with pytest.raises(ValueError):
            SGD(model, momentum=-0.1)
        with pytest.raises(ValueError):
            SGD(model, decay=-0.1)

    def test_shape_mismatch_leaves_model_untouched(self):
        model = Vector([1.0, 2.0])
        optimizer = SGD(model, learning_rate=0.5)
        gradient = constant_gradient(Vector([1.0, 2.0, 3.0]), 1.0)

        with pytest.raises(ValueError, match="shape mismatch"):
            optimizer.fit(model, gradient)

        assert jnp.array_equal(model.x[...], jnp.array([1.0, 2.0], dtype=jnp.float32))
        assert jnp.array_equal(tree_util.tree_leaves(optimizer.velocity)[0], jnp.zeros(2))

    def test_key_mismatch(self):
        model = Vector([1.0, 2.0])
        optimizer = SGD(model)

        with pytest.raises(ValueError, match="keys do not match"):
            optimizer.fit(model, constant_gradient(Pair([1.0, 2.0], [3.0]), 1.0))

    def test_model_changed_after_construction(self):
        model = Vector([1.0, 2.0])
        optimizer = SGD(model)
        other = Pair([1.0, 2.0], [3.0])

        with pytest.raises(ValueError, match="parameter"):
            optimizer.fit(other, constant_gradient(other, 1.0))

    def test_requires_nnx_module(self):
        with pytest.raises(TypeError, match="nnx.Module"):
            SGD({"x": jnp.zeros(2)})

    def test_decay_is_reserved(self):
        with pytest.warns(UserWarning, match="decay"):
            decayed_model = Vector([1.0])
            decayed = SGD(decayed_model, learning_rate=0.5, decay=0.1)
        model = Vector([1.0])
        plain = SGD(model, learning_rate=0.5)

        decayed.fit(decayed_model, constant_gradient(decayed_model, 1.0))
        plain.fit(model, constant_gradient(model, 1.0))

        assert jnp.array_equal(decayed_model.x[...], model.x[...])


class TestSGDInterface:
    def test_learning_rate_is_read_only(self):
        optimizer = SGD(Vector([0.0]), learning_rate=0.3)
        assert optimizer.learning_rate == 0.3
        with pytest.raises(AttributeError):
            optimizer.learning_rate = 0.1

    def test_satisfies_protocol(self):
        assert isinstance(SGD(Vector([0.0])), Optimizer)

    def test_from_config(self):
        from gradstep.config import SGDConfig

        model = Vector([0.0])
        optimizer = SGD.from_config(model, SGDConfig(learning_rate=0.2, momentum=0.5, nesterov=True))
        assert optimizer.config == SGDConfig(learning_rate=0.2, momentum=0.5, nesterov=True)

    def test_transformation_with_optax(self):
        params = {"w": jnp.array([1.0, 2.0])}
        tx = optax.chain(optax.clip_by_global_norm(10.0), sgd(learning_rate=0.5))
        state = tx.init(params)

        updates, state = tx.update({"w": jnp.array([1.0, 1.0])}, state, params)
        params = optax.apply_updates(params, updates)

        assert jnp.allclose(params["w"], jnp.array([0.5, 1.5]))

    def test_transformation_matches_optimizer(self):
        model = Vector([1.0, -3.0])
        optimizer = SGD(model, learning_rate=0.1, momentum=0.9)
        params = params_of(Vector([1.0, -3.0]))
        tx = sgd(learning_rate=0.1, momentum=0.9)
        state = tx.init(params)

        for value in (1.0, -2.0, 0.5):
            optimizer.fit(model, constant_gradient(model, value))
            gradient = tree_util.tree_map(lambda p, v=value: jnp.full_like(p, v), params)
            updates, state = tx.update(gradient, state, params)
            params = optax.apply_updates(params, updates)

        assert jnp.array_equal(model.x[...], tree_util.tree_leaves(params)[0])
