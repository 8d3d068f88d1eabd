"""Poincaré Ball manifold - class-based API with dtype control.

Convention: ||x||^2 < 1/c with c > 0 and sectional curvature -c.

Points and tangent vectors live on the last axis; any leading axes are treated
as a batch of independent points, so a ``(rows, dim)`` weight matrix is a
product of ``rows`` Poincaré balls.

    >>> import jax.numpy as jnp
    >>> from gradstep.manifolds import Poincare
    >>>
    >>> manifold = Poincare()
    >>> x = jnp.array([0.1, 0.2])
    >>> y = jnp.array([0.3, 0.4])
    >>> d = manifold.dist(x, y, c=1.0)
    >>> z = manifold.expmap(-0.1 * manifold.egrad2rgrad(x - y, x, c=1.0), x, c=1.0)

Numerical Precision
-------------------
The conformal factor λ(x) = 2/(1-c||x||²) grows without bound near the
boundary, so every map clamps its denominators and results are projected back
strictly inside the ball. Use ``Poincare(dtype=jnp.float64)`` for points far
from the origin.

References
----------
Ganea et al. "Hyperbolic neural networks." NeurIPS 2018.
Bécigneul & Ganea. "Riemannian adaptive optimization methods." ICLR 2019.
"""

import jax
import jax.numpy as jnp
from jaxtyping import Array, Float

# Default numerical parameters
MIN_NORM = 1e-15


def _get_max_norm_eps(x: Float[Array, "... dim"]) -> float:
    """Get maximum norm epsilon for array's dtype.

    Uses eps^0.75 as empirically stable value that scales with precision.
    """
    return float(jnp.finfo(x.dtype).eps ** 0.75)


def _atanh(x: Float[Array, "..."]) -> Float[Array, "..."]:
    """Inverse hyperbolic tangent clamped away from ±1."""
    eps = jnp.finfo(x.dtype).eps
    return jnp.arctanh(jnp.clip(x, -1.0 + eps, 1.0 - eps))


def _dot(x: Float[Array, "... dim"], y: Float[Array, "... dim"]) -> Float[Array, "... 1"]:
    return jnp.sum(x * y, axis=-1, keepdims=True)


def _conformal_factor(x: Float[Array, "... dim"], c: float) -> Float[Array, "... 1"]:
    """Compute conformal factor λ(x) = 2 / (1 - c||x||²)."""
    x2 = _dot(x, x)
    max_norm_eps = _get_max_norm_eps(x)
    denom = jnp.maximum(1.0 - c * x2, 2 * jnp.sqrt(c) * max_norm_eps - c * max_norm_eps**2)
    return 2.0 / denom


def _proj(x: Float[Array, "... dim"], c: float) -> Float[Array, "... dim"]:
    """Project points onto the Poincaré ball by clipping their norm below 1/√c."""
    max_norm_eps = _get_max_norm_eps(x)
    norm = jnp.linalg.norm(x, axis=-1, keepdims=True)
    max_norm = (1.0 / jnp.sqrt(c)) - max_norm_eps
    cond = norm > max_norm
    return jnp.where(cond, x * (max_norm / jnp.maximum(norm, MIN_NORM)), x)


def _addition(x: Float[Array, "... dim"], y: Float[Array, "... dim"], c: float) -> Float[Array, "... dim"]:
    """Möbius gyrovector addition x ⊕ y (non-commutative)."""
    x2 = _dot(x, x)
    y2 = _dot(y, y)
    xy = _dot(x, y)

    num = (1 + 2 * c * xy + c * y2) * x + (1 - c * x2) * y
    denom = jnp.maximum(1 + 2 * c * xy + c**2 * x2 * y2, MIN_NORM)
    return _proj(num / denom, c)


def _dist(x: Float[Array, "... dim"], y: Float[Array, "... dim"], c: float) -> Float[Array, "..."]:
    """Direct Möbius distance formula."""
    sqrt_c = jnp.sqrt(c)
    x2y2 = _dot(x, x) * _dot(y, y)
    xy = _dot(x, y)
    num = jnp.linalg.norm(y - x, axis=-1, keepdims=True)
    denom = jnp.sqrt(jnp.maximum(1 - 2 * c * xy + c**2 * x2y2, MIN_NORM))
    dist_c = _atanh(sqrt_c * num / denom)
    return jnp.squeeze(2 * dist_c / sqrt_c, axis=-1)


def _expmap(v: Float[Array, "... dim"], x: Float[Array, "... dim"], c: float) -> Float[Array, "... dim"]:
    """Exponential map exp_x(v) = x ⊕ tanh(√c λ(x) ||v|| / 2) v / (√c ||v||)."""
    v_norm = jnp.linalg.norm(v, axis=-1, keepdims=True)
    c_norm_prod = jnp.maximum(jnp.sqrt(c) * v_norm, MIN_NORM)
    lambda_x = _conformal_factor(x, c)
    second_term = jnp.tanh(c_norm_prod * lambda_x / 2) / c_norm_prod * v
    second_term = _proj(second_term, c)
    return _addition(x, second_term, c)


def _retraction(v: Float[Array, "... dim"], x: Float[Array, "... dim"], c: float) -> Float[Array, "... dim"]:
    """First-order approximation of the exponential map: proj(x + v)."""
    return _proj(x + v, c)


def _egrad2rgrad(grad: Float[Array, "... dim"], x: Float[Array, "... dim"], c: float) -> Float[Array, "... dim"]:
    """Rescale a Euclidean gradient by the inverse metric, grad / λ(x)²."""
    lambda_x = _conformal_factor(x, c)
    return grad / (lambda_x**2)


def _tangent_inner(
    u: Float[Array, "... dim"], v: Float[Array, "... dim"], x: Float[Array, "... dim"], c: float
) -> Float[Array, "..."]:
    """Riemannian inner product λ(x)² <u, v>."""
    lambda_x = _conformal_factor(x, c)
    return jnp.squeeze(lambda_x**2 * _dot(u, v), axis=-1)


def _is_in_manifold(x: Float[Array, "... dim"], c: float) -> Array:
    """Check ||x||² < 1/c (strict, no tolerance)."""
    return jnp.squeeze(_dot(x, x), axis=-1) < 1.0 / c


class Poincare:
    """Poincaré ball manifold with optional dtype casting.

    Args:
        dtype: Target JAX dtype for computations, or None to keep input dtypes (default: None)
    """

    def __init__(self, dtype: jnp.dtype | None = None) -> None:
        self.dtype = dtype

    def _cast(self, x: Array) -> Array:
        """Cast array to target dtype if one is set and it's a floating-point array."""
        if self.dtype is not None and isinstance(x, jax.Array) and jnp.issubdtype(x.dtype, jnp.inexact):
            return x.astype(self.dtype)
        return x

    def conformal_factor(self, x: Float[Array, "... dim"], c: float) -> Float[Array, "... 1"]:
        """Conformal factor λ(x), keeping a trailing singleton axis."""
        return _conformal_factor(self._cast(x), c)

    def proj(self, x: Float[Array, "... dim"], c: float) -> Float[Array, "... dim"]:
        """Project point onto Poincaré ball by clipping norm."""
        return _proj(self._cast(x), c)

    def addition(self, x: Float[Array, "... dim"], y: Float[Array, "... dim"], c: float) -> Float[Array, "... dim"]:
        """Möbius gyrovector addition x ⊕ y."""
        return _addition(self._cast(x), self._cast(y), c)

    def dist(self, x: Float[Array, "... dim"], y: Float[Array, "... dim"], c: float) -> Float[Array, "..."]:
        """Compute geodesic distance between Poincaré ball points."""
        return _dist(self._cast(x), self._cast(y), c)

    def expmap(self, v: Float[Array, "... dim"], x: Float[Array, "... dim"], c: float) -> Float[Array, "... dim"]:
        """Exponential map."""
        return _expmap(self._cast(v), self._cast(x), c)

    def retraction(self, v: Float[Array, "... dim"], x: Float[Array, "... dim"], c: float) -> Float[Array, "... dim"]:
        """Retraction."""
        return _retraction(self._cast(v), self._cast(x), c)

    def egrad2rgrad(
        self, grad: Float[Array, "... dim"], x: Float[Array, "... dim"], c: float
    ) -> Float[Array, "... dim"]:
        """Euclidean to Riemannian gradient."""
        return _egrad2rgrad(self._cast(grad), self._cast(x), c)

    def tangent_inner(
        self, u: Float[Array, "... dim"], v: Float[Array, "... dim"], x: Float[Array, "... dim"], c: float
    ) -> Float[Array, "..."]:
        """Tangent inner product."""
        return _tangent_inner(self._cast(u), self._cast(v), self._cast(x), c)

    def is_in_manifold(self, x: Float[Array, "... dim"], c: float) -> Array:
        """Check if on manifold."""
        return _is_in_manifold(self._cast(x), c)
