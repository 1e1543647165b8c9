from __future__ import annotations

import math
from typing import List, Optional

from .config import QualityThresholds
from .types import KEY_LANDMARKS, FaceGeometry, QualityIssue


def _size_ok(geometry: FaceGeometry, image_width: int, image_height: int, thresholds: QualityThresholds) -> bool:
    image_area = float(image_width) * float(image_height)
    if image_area <= 0:
        return False
    return geometry.bounding_box.area / image_area >= thresholds.min_face_size_ratio


def _pose_ok(geometry: FaceGeometry, thresholds: QualityThresholds) -> bool:
    return abs(geometry.head_angle_y) <= thresholds.max_head_angle and abs(geometry.head_angle_z) <= thresholds.max_head_angle


def _eye_open(prob: Optional[float], thresholds: QualityThresholds) -> bool:
    return prob is not None and prob >= thresholds.min_eye_open_prob


def _centered(geometry: FaceGeometry, image_width: int, image_height: int, thresholds: QualityThresholds) -> bool:
    box_x, box_y = geometry.bounding_box.center
    distance = math.hypot(box_x - image_width / 2.0, box_y - image_height / 2.0)
    return distance <= thresholds.center_tolerance * min(image_width, image_height)


def validate_geometry(
    geometry: FaceGeometry,
    image_width: int,
    image_height: int,
    thresholds: Optional[QualityThresholds] = None,
) -> List[QualityIssue]:
    """
    Run every geometric check and return the issues found, in check order.

    Checks are independent; a degenerate bounding box has zero area and so
    always reports TOO_SMALL.
    """
    thresholds = thresholds or QualityThresholds()
    issues: List[QualityIssue] = []

    if not _size_ok(geometry, image_width, image_height, thresholds):
        issues.append(QualityIssue.TOO_SMALL)
    if not _pose_ok(geometry, thresholds):
        issues.append(QualityIssue.FACE_NOT_FRONT_FACING)
    if not (_eye_open(geometry.left_eye_open_prob, thresholds) and _eye_open(geometry.right_eye_open_prob, thresholds)):
        issues.append(QualityIssue.EYES_CLOSED)
    if not KEY_LANDMARKS.issubset(geometry.landmarks):
        issues.append(QualityIssue.KEY_LANDMARKS_MISSING)
    if not _centered(geometry, image_width, image_height, thresholds):
        issues.append(QualityIssue.FACE_NOT_CENTERED)

    return issues
