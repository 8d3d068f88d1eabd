"""Manifold geometry and manifold-valued models."""

from .euclidean import Euclidean
from .model import ManifoldModel, ManifoldModule, ManifoldPoint
from .poincare import Poincare
from .protocol import Manifold

__all__ = [
    "Euclidean",
    "Manifold",
    "ManifoldModel",
    "ManifoldModule",
    "ManifoldPoint",
    "Poincare",
]
