from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ErrorPolicy(str, Enum):
    """What an assessment reports when a pixel computation blows up."""

    FAIL_CLOSED = "fail_closed"
    FAIL_OPEN = "fail_open"


@dataclass(frozen=True)
class QualityThresholds:
    min_face_size_ratio: float = 0.10
    max_head_angle: float = 12.0
    min_eye_open_prob: float = 0.6
    # Fraction of min(image width, image height).
    center_tolerance: float = 0.15
    # Applied on each side of the detector box before the tight crop is tried.
    crop_margin: float = 0.1


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return float(raw)


@dataclass
class Settings:
    # Reference defaults; deployments tighten or relax these through env vars.
    min_face_size_ratio: float = field(default_factory=lambda: float(os.getenv("FACEQ_MIN_FACE_SIZE_RATIO", "0.10")))
    max_head_angle: float = field(default_factory=lambda: float(os.getenv("FACEQ_MAX_HEAD_ANGLE", "12.0")))
    min_eye_open_prob: float = field(default_factory=lambda: float(os.getenv("FACEQ_MIN_EYE_OPEN_PROB", "0.6")))
    center_tolerance: float = field(default_factory=lambda: float(os.getenv("FACEQ_CENTER_TOLERANCE", "0.15")))
    crop_margin: float = field(default_factory=lambda: float(os.getenv("FACEQ_CROP_MARGIN", "0.1")))

    sharpness_strategy: str = field(default_factory=lambda: os.getenv("FACEQ_SHARPNESS_STRATEGY", "laplacian"))
    laplacian_threshold: Optional[float] = field(
        default_factory=lambda: _env_optional_float("FACEQ_LAPLACIAN_THRESHOLD")
    )
    modified_laplacian_threshold: Optional[float] = field(
        default_factory=lambda: _env_optional_float("FACEQ_MODIFIED_LAPLACIAN_THRESHOLD")
    )
    sobel_threshold: Optional[float] = field(default_factory=lambda: _env_optional_float("FACEQ_SOBEL_THRESHOLD"))

    brightness_correction: bool = field(default_factory=lambda: _env_bool("FACEQ_BRIGHTNESS_CORRECTION", "true"))
    error_policy: ErrorPolicy = field(
        default_factory=lambda: ErrorPolicy(os.getenv("FACEQ_ERROR_POLICY", ErrorPolicy.FAIL_CLOSED.value).strip().lower())
    )

    log_level: str = field(default_factory=lambda: os.getenv("FACEQ_LOG_LEVEL", "INFO").upper())

    def thresholds(self) -> QualityThresholds:
        return QualityThresholds(
            min_face_size_ratio=self.min_face_size_ratio,
            max_head_angle=self.max_head_angle,
            min_eye_open_prob=self.min_eye_open_prob,
            center_tolerance=self.center_tolerance,
            crop_margin=self.crop_margin,
        )

    def sharpness_threshold(self) -> Optional[float]:
        return {
            "laplacian": self.laplacian_threshold,
            "modified_laplacian": self.modified_laplacian_threshold,
            "sobel": self.sobel_threshold,
        }.get(self.sharpness_strategy.strip().lower())

    def build_assessor(self):
        from .assessment import FaceQualityAssessor
        from .quality import build_strategy

        return FaceQualityAssessor(
            thresholds=self.thresholds(),
            strategy=build_strategy(self.sharpness_strategy, self.sharpness_threshold()),
            brightness_correction=self.brightness_correction,
            error_policy=self.error_policy,
        )
