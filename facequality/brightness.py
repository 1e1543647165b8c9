"""
Adaptive Gamma Correction with Weighting Distribution (AGCWD).

Dim and blown-out crops have artificially weak gradients, so exposure is
normalised before sharpness is measured. The corrected grid only feeds the
sharpness estimators; it is never handed back as the face image.
"""

from __future__ import annotations

import logging

import numpy as np

from .types import Exposure, PixelGrid

log = logging.getLogger(__name__)

EXPECTED_MEAN = 112.0
EXPOSURE_TOLERANCE = 0.2

DIMMED_WEIGHT = 0.55
BRIGHT_WEIGHT = 0.25
TRUNCATED_CDF_FLOOR = 0.5


def classify_exposure(grid: PixelGrid) -> Exposure:
    t = (grid.mean() - EXPECTED_MEAN) / EXPECTED_MEAN
    if t < -EXPOSURE_TOLERANCE:
        return Exposure.DIMMED
    if t > EXPOSURE_TOLERANCE:
        return Exposure.BRIGHT
    return Exposure.NORMAL


def agcwd(grid: PixelGrid, a: float = BRIGHT_WEIGHT, truncated_cdf: bool = False) -> PixelGrid:
    """Remap every intensity i to 255 * (i / 255) ** (1 - weighted_cdf[i])."""
    intensities = np.clip(grid.pixels, 0.0, 255.0).astype(np.intp)
    hist = np.bincount(intensities.ravel(), minlength=256).astype(np.float64)
    prob = hist / intensities.size

    prob_min = prob.min()
    prob_max = prob.max()
    if prob_max == prob_min:
        return PixelGrid(intensities)

    with np.errstate(divide="raise", invalid="raise", over="raise"):
        normalized = (prob - prob_min) / (prob_max - prob_min)
        weighted = prob_max * np.sign(normalized) * np.abs(normalized) ** a
        weighted = weighted / weighted.sum()

        # Exclusive running sum: the entry for intensity i covers bins below i.
        cdf = np.concatenate(([0.0], np.cumsum(weighted)[:-1]))
        inverse_cdf = 1.0 - cdf
        if truncated_cdf:
            inverse_cdf = np.maximum(TRUNCATED_CDF_FLOOR, inverse_cdf)

        levels = np.arange(256, dtype=np.float64) / 255.0
        # Epsilon keeps exact levels (gamma == 1) from flooring one step down.
        lut = np.floor(255.0 * levels ** inverse_cdf + 1e-9)
    lut = np.clip(lut, 0.0, 255.0)
    return PixelGrid(lut[intensities])


def _process_dimmed(grid: PixelGrid) -> PixelGrid:
    return agcwd(grid, a=DIMMED_WEIGHT, truncated_cdf=True)


def _process_bright(grid: PixelGrid) -> PixelGrid:
    negative = PixelGrid(255.0 - grid.pixels)
    corrected = agcwd(negative, a=BRIGHT_WEIGHT, truncated_cdf=False)
    return PixelGrid(255.0 - corrected.pixels)


def adjust_brightness(grid: PixelGrid) -> tuple[PixelGrid, Exposure]:
    """Return the exposure-normalised grid and the branch that produced it.

    Well-exposed grids are returned as-is.
    """
    exposure = classify_exposure(grid)
    if exposure is Exposure.DIMMED:
        log.debug("Applying dimmed image processing", extra={"mean": grid.mean()})
        return _process_dimmed(grid), exposure
    if exposure is Exposure.BRIGHT:
        log.debug("Applying bright image processing", extra={"mean": grid.mean()})
        return _process_bright(grid), exposure
    log.debug("No brightness adjustment needed", extra={"mean": grid.mean()})
    return grid, exposure
