from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Tuple

import numpy as np

from .errors import InvalidDimensions


@dataclass(frozen=True)
class PixelGrid:
    """Single-channel intensity samples, row-major, values in [0, 255].

    The wrapped array is made read-only so a grid can be handed to every
    estimator without copying.
    """

    pixels: np.ndarray

    def __post_init__(self) -> None:
        pixels = np.array(self.pixels, dtype=np.float64, copy=True)
        if pixels.ndim != 2:
            raise InvalidDimensions(0, 0, f"expected a 2-D grid, got shape {pixels.shape}")
        height, width = pixels.shape
        if width <= 0 or height <= 0:
            raise InvalidDimensions(width, height)
        pixels.flags.writeable = False
        object.__setattr__(self, "pixels", pixels)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def mean(self) -> float:
        return float(self.pixels.mean())


@dataclass(frozen=True)
class BoundingBox:
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def is_degenerate(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def area(self) -> float:
        if self.is_degenerate:
            return 0.0
        return self.width * self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.left + self.right) / 2.0, (self.top + self.bottom) / 2.0


class Landmark(str, Enum):
    LEFT_EYE = "left_eye"
    RIGHT_EYE = "right_eye"
    NOSE_BASE = "nose_base"
    MOUTH_BOTTOM = "mouth_bottom"
    MOUTH_LEFT = "mouth_left"
    MOUTH_RIGHT = "mouth_right"


KEY_LANDMARKS: FrozenSet[Landmark] = frozenset(Landmark)


@dataclass(frozen=True)
class FaceGeometry:
    """Face metadata as reported by the detector collaborator."""

    bounding_box: BoundingBox
    head_angle_y: float = 0.0
    head_angle_z: float = 0.0
    left_eye_open_prob: Optional[float] = None
    right_eye_open_prob: Optional[float] = None
    landmarks: FrozenSet[Landmark] = field(default_factory=frozenset)


class QualityIssue(str, Enum):
    TOO_SMALL = "TOO_SMALL"
    FACE_NOT_FRONT_FACING = "FACE_NOT_FRONT_FACING"
    EYES_CLOSED = "EYES_CLOSED"
    KEY_LANDMARKS_MISSING = "KEY_LANDMARKS_MISSING"
    FACE_NOT_CENTERED = "FACE_NOT_CENTERED"
    BLURRY_FACE = "BLURRY_FACE"
    NO_FACE_DETECTED = "NO_FACE_DETECTED"

    @property
    def penalty(self) -> float:
        return ISSUE_PENALTIES[self]

    @property
    def message(self) -> str:
        return ISSUE_MESSAGES[self]


ISSUE_PENALTIES = {
    QualityIssue.TOO_SMALL: 0.30,
    QualityIssue.FACE_NOT_FRONT_FACING: 0.25,
    QualityIssue.EYES_CLOSED: 0.20,
    QualityIssue.KEY_LANDMARKS_MISSING: 0.25,
    QualityIssue.FACE_NOT_CENTERED: 0.20,
    QualityIssue.BLURRY_FACE: 0.25,
    # Terminal issue: the no-face result is fixed at 0.0 regardless.
    QualityIssue.NO_FACE_DETECTED: 1.0,
}

ISSUE_MESSAGES = {
    QualityIssue.TOO_SMALL: "Face is too small in the image",
    QualityIssue.FACE_NOT_FRONT_FACING: "Face is not front facing",
    QualityIssue.EYES_CLOSED: "Eyes appear to be closed",
    QualityIssue.KEY_LANDMARKS_MISSING: "Key facial landmarks are missing",
    QualityIssue.FACE_NOT_CENTERED: "Face is not centered in the image",
    QualityIssue.BLURRY_FACE: "Image is too blurry",
    QualityIssue.NO_FACE_DETECTED: "No face detected in the image",
}


class Exposure(str, Enum):
    DIMMED = "dimmed"
    NORMAL = "normal"
    BRIGHT = "bright"


@dataclass(frozen=True)
class SharpnessReport:
    strategy: str
    score: float
    threshold: float
    laplacian: float
    modified_laplacian: float
    sobel: float
    exposure: Exposure = Exposure.NORMAL

    @property
    def is_sharp(self) -> bool:
        return self.score >= self.threshold


def score_for(issues: Tuple[QualityIssue, ...]) -> float:
    """1.0 minus the summed issue penalties, clamped to [0, 1]."""
    score = 1.0 - sum(issue.penalty for issue in issues)
    if math.isnan(score):
        return 0.0
    return max(0.0, min(1.0, score))


@dataclass(frozen=True)
class QualityResult:
    is_good_quality: bool
    quality_score: float
    issues: Tuple[QualityIssue, ...] = ()
    failure_reason: Optional[str] = None
    sharpness: Optional[SharpnessReport] = None

    @classmethod
    def from_issues(
        cls,
        issues: Tuple[QualityIssue, ...],
        failure_reason: Optional[str] = None,
        sharpness: Optional[SharpnessReport] = None,
    ) -> "QualityResult":
        # Duplicates would double-count penalties.
        unique = tuple(dict.fromkeys(issues))
        if failure_reason is None and unique:
            failure_reason = unique[-1].message
        return cls(
            is_good_quality=len(unique) == 0,
            quality_score=score_for(unique),
            issues=unique,
            failure_reason=failure_reason,
            sharpness=sharpness,
        )
