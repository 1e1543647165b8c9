import pytest

from facequality.config import ErrorPolicy, QualityThresholds, Settings
from facequality.quality import LaplacianStrategy, SobelStrategy


def test_default_settings_build_laplacian_fail_closed_assessor() -> None:
    assessor = Settings().build_assessor()

    assert isinstance(assessor.strategy, LaplacianStrategy)
    assert assessor.strategy.threshold == 150.0
    assert assessor.error_policy is ErrorPolicy.FAIL_CLOSED
    assert assessor.brightness_correction is True
    assert assessor.thresholds == QualityThresholds()


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("FACEQ_SHARPNESS_STRATEGY", "sobel")
    monkeypatch.setenv("FACEQ_SOBEL_THRESHOLD", "5.5")
    monkeypatch.setenv("FACEQ_MIN_FACE_SIZE_RATIO", "0.15")
    monkeypatch.setenv("FACEQ_MAX_HEAD_ANGLE", "10")
    monkeypatch.setenv("FACEQ_ERROR_POLICY", "FAIL_OPEN")
    monkeypatch.setenv("FACEQ_BRIGHTNESS_CORRECTION", "false")

    assessor = Settings().build_assessor()

    assert isinstance(assessor.strategy, SobelStrategy)
    assert assessor.strategy.threshold == 5.5
    assert assessor.thresholds.min_face_size_ratio == 0.15
    assert assessor.thresholds.max_head_angle == 10.0
    assert assessor.error_policy is ErrorPolicy.FAIL_OPEN
    assert assessor.brightness_correction is False


def test_unset_strategy_threshold_uses_strategy_default(monkeypatch) -> None:
    monkeypatch.setenv("FACEQ_SHARPNESS_STRATEGY", "modified_laplacian")
    monkeypatch.delenv("FACEQ_MODIFIED_LAPLACIAN_THRESHOLD", raising=False)

    assert Settings().build_assessor().strategy.threshold == 7.0


def test_invalid_policy_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("FACEQ_ERROR_POLICY", "maybe")
    with pytest.raises(ValueError):
        Settings()


def test_invalid_strategy_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("FACEQ_SHARPNESS_STRATEGY", "wavelet")
    with pytest.raises(ValueError):
        Settings().build_assessor()
