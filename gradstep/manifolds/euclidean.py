"""Euclidean manifold - flat parameter space.

All maps reduce to vector-space arithmetic: the exponential map and the
retraction are addition, the Riemannian gradient is the Euclidean gradient and
projection is the identity. A ``ManifoldModule`` on this manifold therefore
takes exactly the steps of plain gradient descent.

    >>> import jax.numpy as jnp
    >>> from gradstep.manifolds import Euclidean
    >>>
    >>> manifold = Euclidean()
    >>> x = jnp.array([1.0, 2.0])
    >>> manifold.expmap(jnp.array([0.5, -0.5]), x)
    Array([1.5, 1.5], dtype=float32)
"""

import jax
import jax.numpy as jnp
from jaxtyping import Array, Float


class Euclidean:
    """Euclidean manifold with optional dtype casting.

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

    def proj(self, x: Float[Array, "... dim"], c: float = 0.0) -> Float[Array, "... dim"]:
        """Project point onto Euclidean space (identity)."""
        return self._cast(x)

    def dist(self, x: Float[Array, "... dim"], y: Float[Array, "... dim"], c: float = 0.0) -> Float[Array, "..."]:
        """Euclidean distance ||x - y|| along the last axis."""
        return jnp.linalg.norm(self._cast(x) - self._cast(y), axis=-1)

    def expmap(self, v: Float[Array, "... dim"], x: Float[Array, "... dim"], c: float = 0.0) -> Float[Array, "... dim"]:
        """Exponential map: x + v."""
        return self._cast(x) + self._cast(v)

    def retraction(
        self, v: Float[Array, "... dim"], x: Float[Array, "... dim"], c: float = 0.0
    ) -> Float[Array, "... dim"]:
        """Retraction, equal to the exponential map: x + v."""
        return self._cast(x) + self._cast(v)

    def egrad2rgrad(
        self, grad: Float[Array, "... dim"], x: Float[Array, "... dim"], c: float = 0.0
    ) -> Float[Array, "... dim"]:
        """Euclidean to Riemannian gradient (identity)."""
        return self._cast(grad)

    def tangent_inner(
        self, u: Float[Array, "... dim"], v: Float[Array, "... dim"], x: Float[Array, "... dim"], c: float = 0.0
    ) -> Float[Array, "..."]:
        """Dot product along the last axis."""
        return jnp.sum(self._cast(u) * self._cast(v), axis=-1)

    def is_in_manifold(self, x: Float[Array, "... dim"], c: float = 0.0) -> Array:
        """Every finite point lies in Euclidean space."""
        return jnp.all(jnp.isfinite(x), axis=-1)
