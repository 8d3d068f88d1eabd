"""Global fixtures shared by the optimizer tests."""

from __future__ import annotations

import jax
import jax.numpy as jnp
import numpy as np
import pytest

# Enable float64 support in JAX
jax.config.update("jax_enable_x64", True)


@pytest.fixture(scope="package", params=[*range(10, 13)])
def seed(request: pytest.FixtureRequest) -> int:
    """Global seed for reproducibility."""
    return request.param


@pytest.fixture(scope="package")
def rng(seed: int) -> np.random.Generator:
    """Shared NumPy RNG, seeded per test run."""
    return np.random.default_rng(seed=seed)


@pytest.fixture(scope="package", params=[jnp.float32, jnp.float64])
def dtype(request: pytest.FixtureRequest) -> jnp.dtype:
    """Test both float32 and float64 precision."""
    return jnp.dtype(request.param)


@pytest.fixture(scope="package")
def tolerance(dtype: jnp.dtype) -> tuple[float, float]:
    """Numerical tolerances for floating point comparisons (atol, rtol)."""
    if dtype == jnp.float32:
        return 1e-6, 1e-6
    return 1e-12, 1e-12


@pytest.fixture
def regression_data(rng: np.random.Generator) -> tuple[jnp.ndarray, jnp.ndarray]:
    """Noise-free linear regression batch, inputs (32, 3) and targets (32, 2)."""
    x = rng.normal(size=(32, 3)).astype(np.float32)
    w = rng.normal(size=(3, 2)).astype(np.float32)
    return jnp.asarray(x), jnp.asarray(x @ w)
