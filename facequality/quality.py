from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Type

import numpy as np
from PIL import Image

from .errors import InvalidDimensions
from .types import PixelGrid


def to_grayscale(rgb: np.ndarray) -> PixelGrid:
    """Project an RGB (or already single-channel) buffer onto luma."""
    buffer = np.asarray(rgb, dtype=np.float64)
    if buffer.ndim not in (2, 3):
        raise InvalidDimensions(0, 0, f"unsupported buffer shape {buffer.shape}")
    height, width = buffer.shape[:2]
    if width <= 0 or height <= 0:
        raise InvalidDimensions(width, height)
    if buffer.ndim == 2:
        return PixelGrid(buffer)
    if buffer.shape[2] < 3:
        raise InvalidDimensions(width, height, f"expected 3 channels, got {buffer.shape[2]}")
    # ITU-R BT.601 luma; blur thresholds are calibrated against these weights.
    luma = 0.299 * buffer[:, :, 0] + 0.587 * buffer[:, :, 1] + 0.114 * buffer[:, :, 2]
    return PixelGrid(luma)


def grid_from_image(image: Image.Image) -> PixelGrid:
    width, height = image.size
    if width <= 0 or height <= 0:
        raise InvalidDimensions(width, height)
    return to_grayscale(np.asarray(image.convert("RGB")))


def _has_interior(grid: PixelGrid) -> bool:
    return grid.width >= 3 and grid.height >= 3


def _neighbours(p: np.ndarray):
    """Shifted views of the 3x3 neighbourhood of every interior pixel."""
    return {
        (dy, dx): p[1 + dy : p.shape[0] - 1 + dy, 1 + dx : p.shape[1] - 1 + dx]
        for dy in (-1, 0, 1)
        for dx in (-1, 0, 1)
    }


def sobel_sharpness(grid: PixelGrid) -> float:
    """Mean Sobel gradient magnitude over interior pixels; higher is sharper."""
    if not _has_interior(grid):
        return 0.0
    n = _neighbours(grid.pixels)
    with np.errstate(over="raise", invalid="raise"):
        gx = (n[(-1, 1)] + 2.0 * n[(0, 1)] + n[(1, 1)]) - (n[(-1, -1)] + 2.0 * n[(0, -1)] + n[(1, -1)])
        gy = (n[(1, -1)] + 2.0 * n[(1, 0)] + n[(1, 1)]) - (n[(-1, -1)] + 2.0 * n[(-1, 0)] + n[(-1, 1)])
        magnitude = np.sqrt(gx * gx + gy * gy)
    return float(magnitude.mean())


def laplacian_sharpness(grid: PixelGrid) -> float:
    """Second moment (about zero) of the 4-neighbour Laplacian response.

    Only interior pixels are convolved and averaged. This is the raw mean of
    squared responses, not the variance about the sample mean.
    """
    if not _has_interior(grid):
        return 0.0
    n = _neighbours(grid.pixels)
    with np.errstate(over="raise", invalid="raise"):
        response = n[(-1, 0)] + n[(1, 0)] + n[(0, -1)] + n[(0, 1)] - 4.0 * n[(0, 0)]
        return float(np.mean(response * response))


def modified_laplacian_sharpness(grid: PixelGrid) -> float:
    """Mean of |Lx| + |Ly| with separable second differences.

    The unconvolved 1-pixel border contributes zero but still counts in the
    denominator, so the mean is taken over width * height pixels.
    """
    if not _has_interior(grid):
        return 0.0
    n = _neighbours(grid.pixels)
    with np.errstate(over="raise", invalid="raise"):
        lap_x = 2.0 * n[(0, 0)] - n[(0, -1)] - n[(0, 1)]
        lap_y = 2.0 * n[(0, 0)] - n[(-1, 0)] - n[(1, 0)]
        total = float(np.sum(np.abs(lap_x) + np.abs(lap_y)))
    return total / (grid.width * grid.height)


class SharpnessStrategy(ABC):
    """A sharpness estimator paired with its pass/fail threshold."""

    name: str = ""
    default_threshold: float = 0.0

    def __init__(self, threshold: float | None = None) -> None:
        self.threshold = self.default_threshold if threshold is None else float(threshold)

    @abstractmethod
    def score(self, grid: PixelGrid) -> float:
        raise NotImplementedError

    def is_sharp(self, score: float) -> bool:
        return score >= self.threshold

    def __repr__(self) -> str:
        return f"{type(self).__name__}(threshold={self.threshold})"


class LaplacianStrategy(SharpnessStrategy):
    name = "laplacian"
    default_threshold = 150.0

    def score(self, grid: PixelGrid) -> float:
        return laplacian_sharpness(grid)


class ModifiedLaplacianStrategy(SharpnessStrategy):
    name = "modified_laplacian"
    default_threshold = 7.0

    def score(self, grid: PixelGrid) -> float:
        return modified_laplacian_sharpness(grid)


class SobelStrategy(SharpnessStrategy):
    name = "sobel"
    default_threshold = 20.0

    def score(self, grid: PixelGrid) -> float:
        return sobel_sharpness(grid)


STRATEGIES: Dict[str, Type[SharpnessStrategy]] = {
    cls.name: cls for cls in (LaplacianStrategy, ModifiedLaplacianStrategy, SobelStrategy)
}


def build_strategy(name: str, threshold: float | None = None) -> SharpnessStrategy:
    key = name.strip().lower()
    if key not in STRATEGIES:
        raise ValueError(f"unknown sharpness strategy {name!r}; expected one of {sorted(STRATEGIES)}")
    return STRATEGIES[key](threshold)
