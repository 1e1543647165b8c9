import numpy as np
import pytest
from PIL import Image

from facequality.errors import InvalidDimensions
from facequality.quality import (
    LaplacianStrategy,
    ModifiedLaplacianStrategy,
    SobelStrategy,
    build_strategy,
    grid_from_image,
    laplacian_sharpness,
    modified_laplacian_sharpness,
    sobel_sharpness,
    to_grayscale,
)
from facequality.types import PixelGrid

ESTIMATORS = [sobel_sharpness, laplacian_sharpness, modified_laplacian_sharpness]


def _box_blur(pixels: np.ndarray) -> np.ndarray:
    padded = np.pad(pixels, 1, mode="edge")
    h, w = pixels.shape
    return sum(padded[dy : dy + h, dx : dx + w] for dy in range(3) for dx in range(3)) / 9.0


def _step_edge(width: int = 16, height: int = 12) -> np.ndarray:
    pixels = np.zeros((height, width))
    pixels[:, width // 2 :] = 255.0
    return pixels


def test_grayscale_uses_bt601_weights() -> None:
    rgb = np.zeros((2, 3, 3), dtype=np.uint8)
    rgb[0, 0] = (255, 0, 0)
    rgb[0, 1] = (0, 255, 0)
    rgb[0, 2] = (0, 0, 255)
    rgb[1, :] = (200, 200, 200)

    grid = to_grayscale(rgb)

    assert (grid.width, grid.height) == (3, 2)
    assert grid.pixels[0, 0] == pytest.approx(0.299 * 255)
    assert grid.pixels[0, 1] == pytest.approx(0.587 * 255)
    assert grid.pixels[0, 2] == pytest.approx(0.114 * 255)
    assert np.allclose(grid.pixels[1], 200.0)


def test_grid_from_image_reports_dimensions() -> None:
    image = Image.new("RGB", (40, 25), color=(180, 160, 140))
    grid = grid_from_image(image)

    assert grid.width == 40
    assert grid.height == 25
    assert 0.0 <= grid.mean() <= 255.0


def test_grid_is_read_only() -> None:
    grid = to_grayscale(np.full((4, 4), 10.0))
    with pytest.raises(ValueError):
        grid.pixels[0, 0] = 99.0


def test_grayscale_rejects_empty_buffer() -> None:
    with pytest.raises(InvalidDimensions):
        to_grayscale(np.zeros((0, 5, 3)))
    with pytest.raises(InvalidDimensions):
        to_grayscale(np.zeros(5))


@pytest.mark.parametrize("estimator", ESTIMATORS)
def test_uniform_grid_has_zero_sharpness(estimator) -> None:
    grid = PixelGrid(np.full((20, 30), 137.0))
    assert estimator(grid) == 0.0


@pytest.mark.parametrize("estimator", ESTIMATORS)
def test_grid_without_interior_returns_zero(estimator) -> None:
    grid = PixelGrid(np.array([[0.0, 255.0, 0.0, 255.0], [255.0, 0.0, 255.0, 0.0]]))
    assert estimator(grid) == 0.0


@pytest.mark.parametrize("estimator", ESTIMATORS)
def test_scores_are_non_negative(estimator) -> None:
    rng = np.random.default_rng(7)
    grid = PixelGrid(rng.uniform(0, 255, size=(32, 48)))
    assert estimator(grid) >= 0.0


@pytest.mark.parametrize("estimator", [laplacian_sharpness, modified_laplacian_sharpness])
def test_step_edge_scores_above_blurred_copy(estimator) -> None:
    sharp = _step_edge()
    blurred = _box_blur(sharp)

    assert estimator(PixelGrid(sharp)) > estimator(PixelGrid(blurred))


@pytest.mark.parametrize("estimator", ESTIMATORS)
def test_thin_line_scores_above_blurred_copy(estimator) -> None:
    sharp = np.zeros((12, 9))
    sharp[:, 4] = 255.0
    blurred = _box_blur(sharp)

    assert estimator(PixelGrid(sharp)) > estimator(PixelGrid(blurred))


def test_laplacian_is_mean_of_squares_over_interior() -> None:
    # Interior is the single centre pixel; its response is -4 * 10.
    pixels = np.zeros((3, 3))
    pixels[1, 1] = 10.0
    assert laplacian_sharpness(PixelGrid(pixels)) == pytest.approx(1600.0)


def test_modified_laplacian_counts_border_in_denominator() -> None:
    pixels = np.zeros((3, 3))
    pixels[1, 1] = 10.0
    # |20| + |20| at the centre, zero elsewhere, averaged over 9 pixels.
    assert modified_laplacian_sharpness(PixelGrid(pixels)) == pytest.approx(40.0 / 9.0)


def test_sobel_matches_hand_computed_step() -> None:
    pixels = np.zeros((3, 3))
    pixels[:, 2] = 100.0
    # Gx = 4 * 100, Gy = 0 for the single interior pixel.
    assert sobel_sharpness(PixelGrid(pixels)) == pytest.approx(400.0)


def test_build_strategy_defaults_and_overrides() -> None:
    assert isinstance(build_strategy("laplacian"), LaplacianStrategy)
    assert build_strategy("laplacian").threshold == 150.0
    assert isinstance(build_strategy("Modified_Laplacian"), ModifiedLaplacianStrategy)
    assert build_strategy("modified_laplacian").threshold == 7.0

    sobel = build_strategy("sobel", 42.0)
    assert isinstance(sobel, SobelStrategy)
    assert sobel.threshold == 42.0
    assert sobel.is_sharp(42.0)
    assert not sobel.is_sharp(41.9)


def test_build_strategy_rejects_unknown_name() -> None:
    with pytest.raises(ValueError):
        build_strategy("fft")
