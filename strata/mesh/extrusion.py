"""Vertical layer configuration for mesh extrusion."""

from __future__ import annotations

from typing import Sequence

import numpy as np


class ExtrusionConfig:
    """Thicknesses of the layers hanging below a surface mesh.

    Layers are listed from the top (the surface mesh) downwards. Layer ``k``
    lies between the depths ``layer_depths[k]`` and ``layer_depths[k + 1]``
    below the surface.

    Args:
        layer_heights: One thickness shared by all layers, or the thickness
            of every layer from top to bottom.
        n_layers: Layer count. Required with a single thickness, checked
            against the sequence length otherwise.

    Raises:
        ValueError: If there are no layers or a thickness is not positive.

    Example:
        >>> ExtrusionConfig(layer_heights=10.0, n_layers=3).layer_depths
        array([ 0., 10., 20., 30.])
        >>> ExtrusionConfig([1, 2, 4]).total_height
        7.0
    """

    def __init__(
        self,
        layer_heights: float | Sequence[float] | np.ndarray,
        n_layers: int | None = None,
    ):
        if np.ndim(layer_heights) == 0:
            if n_layers is None:
                raise ValueError("A single layer height needs n_layers")
            if n_layers < 1:
                raise ValueError(f"n_layers must be at least 1, got {n_layers}")
            heights = np.full(n_layers, float(layer_heights))
            uniform = True
        else:
            heights = np.asarray(layer_heights, dtype=float)
            if heights.ndim != 1 or heights.size == 0:
                raise ValueError("layer_heights must be a non-empty 1D array")
            if n_layers is not None and n_layers != heights.size:
                raise ValueError(
                    f"Got {heights.size} layer heights for {n_layers} layers"
                )
            uniform = bool(np.allclose(heights, heights[0]))

        if np.any(heights <= 0):
            raise ValueError(f"Layer heights must be positive, got {heights}")

        self._heights = heights
        self._uniform = uniform

    @classmethod
    def uniform(cls, layer_height: float, n_layers: int) -> ExtrusionConfig:
        return cls(float(layer_height), n_layers=n_layers)

    @classmethod
    def graded(
        cls, total_height: float, n_layers: int, grading: float = 1.0
    ) -> ExtrusionConfig:
        """Split ``total_height`` into layers growing by ``grading`` downwards.

        A grading above 1 thickens the deeper layers, below 1 thins them.
        """
        if grading == 1.0:
            return cls.uniform(total_height / n_layers, n_layers)

        # Geometric series h0 * grading**k summing to total_height
        first = total_height * (grading - 1) / (grading**n_layers - 1)
        return cls(first * grading ** np.arange(n_layers))

    @classmethod
    def from_depths(cls, depths: Sequence[float] | np.ndarray) -> ExtrusionConfig:
        """Build the layers between increasing boundary depths.

        Args:
            depths: Depths of the layer boundaries below the surface. A
                leading 0 is optional.
        """
        depths = np.asarray(depths, dtype=float)
        if depths.ndim != 1 or depths.size == 0:
            raise ValueError("depths must be a non-empty 1D array")
        if depths[0] != 0.0:
            depths = np.concatenate(([0.0], depths))
        return cls(np.diff(depths))

    @property
    def n_layers(self) -> int:
        return self._heights.size

    @property
    def layer_heights(self) -> np.ndarray:
        """Copy of the layer thicknesses, top to bottom."""
        return self._heights.copy()

    @property
    def total_height(self) -> float:
        return float(self._heights.sum())

    @property
    def is_uniform(self) -> bool:
        return self._uniform

    @property
    def layer_depths(self) -> np.ndarray:
        """Boundary depths below the surface, shape (n_layers + 1,), from 0."""
        if self._uniform:
            # Multiples of the thickness instead of a rounding cumulative sum
            return np.arange(self.n_layers + 1) * self._heights[0]
        return np.concatenate(([0.0], np.cumsum(self._heights)))

    def __repr__(self) -> str:
        kind = "uniform" if self._uniform else "variable"
        return (
            f"ExtrusionConfig(n_layers={self.n_layers}, "
            f"total_height={self.total_height:g}, {kind})"
        )
