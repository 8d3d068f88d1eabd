"""Manifold Protocol for structural typing.

Defines the interface that ``ManifoldModule`` needs from a geometry in order
to turn gradients into tangent vectors and move its parameters along them.
Use ``Manifold`` as a type hint for any parameter that accepts an arbitrary
manifold instance.

This is a ``typing.Protocol`` -- no classes need to explicitly inherit from it.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from jaxtyping import Array, Float


@runtime_checkable
class Manifold(Protocol):
    """Structural protocol for manifold classes.

    Both concrete manifold classes (``Euclidean``, ``Poincare``) satisfy this
    protocol. Points and tangent vectors live on the last axis; leading axes
    are batch axes.
    """

    dtype: object

    def proj(self, x: Float[Array, "... dim"], c: float) -> Float[Array, "... dim"]: ...

    def dist(self, x: Float[Array, "... dim"], y: Float[Array, "... dim"], c: float) -> Float[Array, "..."]: ...

    def expmap(self, v: Float[Array, "... dim"], x: Float[Array, "... dim"], c: float) -> Float[Array, "... dim"]: ...

    def retraction(self, v: Float[Array, "... dim"], x: Float[Array, "... dim"], c: float) -> Float[Array, "... dim"]: ...

    def egrad2rgrad(
        self, grad: Float[Array, "... dim"], x: Float[Array, "... dim"], c: float
    ) -> Float[Array, "... dim"]: ...

    def tangent_inner(
        self, u: Float[Array, "... dim"], v: Float[Array, "... dim"], x: Float[Array, "... dim"], c: float
    ) -> Float[Array, "..."]: ...

    def is_in_manifold(self, x: Float[Array, "... dim"], c: float) -> Array: ...
