from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Sequence, Tuple

from PIL import Image

from .brightness import adjust_brightness
from .config import ErrorPolicy, QualityThresholds
from .errors import DegenerateCrop, InvalidDimensions
from .geometry import validate_geometry
from .imaging import crop_face
from .quality import (
    LaplacianStrategy,
    SharpnessStrategy,
    grid_from_image,
    laplacian_sharpness,
    modified_laplacian_sharpness,
    sobel_sharpness,
)
from .types import Exposure, FaceGeometry, QualityIssue, QualityResult, SharpnessReport

log = logging.getLogger(__name__)

UNABLE_TO_PROCESS_FACE = "Unable to process face for quality check"
FAILED_TO_PROCESS_IMAGE = "Failed to process image"


def no_face_result() -> QualityResult:
    return QualityResult(
        is_good_quality=False,
        quality_score=0.0,
        issues=(QualityIssue.NO_FACE_DETECTED,),
        failure_reason=QualityIssue.NO_FACE_DETECTED.message,
    )


def largest_face(faces: Sequence[FaceGeometry]) -> Optional[FaceGeometry]:
    """The detection with the largest bounding-box area, or None."""
    if not faces:
        return None
    return max(faces, key=lambda face: face.bounding_box.area)


class FaceQualityAssessor:
    """
    Combine geometric checks and crop sharpness into a QualityResult.

    The assessor holds configuration only, so a single instance can serve
    concurrent calls.
    """

    def __init__(
        self,
        thresholds: Optional[QualityThresholds] = None,
        strategy: Optional[SharpnessStrategy] = None,
        brightness_correction: bool = True,
        error_policy: ErrorPolicy = ErrorPolicy.FAIL_CLOSED,
    ) -> None:
        self.thresholds = thresholds or QualityThresholds()
        self.strategy = strategy or LaplacianStrategy()
        self.brightness_correction = brightness_correction
        self.error_policy = ErrorPolicy(error_policy)

    def measure_sharpness(self, face: Image.Image) -> SharpnessReport:
        grid = grid_from_image(face)
        exposure = Exposure.NORMAL
        if self.brightness_correction:
            grid, exposure = adjust_brightness(grid)

        score = self.strategy.score(grid)
        if math.isnan(score):
            raise ArithmeticError(f"{self.strategy.name} sharpness is NaN")
        report = SharpnessReport(
            strategy=self.strategy.name,
            score=score,
            threshold=self.strategy.threshold,
            laplacian=laplacian_sharpness(grid),
            modified_laplacian=modified_laplacian_sharpness(grid),
            sobel=sobel_sharpness(grid),
            exposure=exposure,
        )
        log.debug(
            "Sharpness measured",
            extra={
                "strategy": report.strategy,
                "score": round(report.score, 3),
                "threshold": report.threshold,
                "laplacian": round(report.laplacian, 3),
                "modified_laplacian": round(report.modified_laplacian, 3),
                "sobel": round(report.sobel, 3),
                "exposure": exposure.value,
            },
        )
        return report

    def _evaluate(self, image: Image.Image, geometry: Optional[FaceGeometry]) -> QualityResult:
        issues: List[QualityIssue] = []
        # Reports the most recently added issue.
        failure_reason: Optional[str] = None

        face = image
        if geometry is not None:
            issues.extend(validate_geometry(geometry, image.width, image.height, self.thresholds))
            if issues:
                failure_reason = issues[-1].message
            try:
                face = crop_face(image, geometry.bounding_box, self.thresholds.crop_margin)
            except DegenerateCrop as exc:
                log.debug("Unable to crop face for blur detection", extra={"reason": exc.reason})
                issues.append(QualityIssue.BLURRY_FACE)
                return QualityResult.from_issues(tuple(issues), failure_reason=UNABLE_TO_PROCESS_FACE)

        try:
            report = self.measure_sharpness(face)
        except (ArithmeticError, ValueError) as exc:
            log.exception(
                "Sharpness computation failed",
                extra={"policy": self.error_policy.value, "error": type(exc).__name__},
            )
            if self.error_policy is ErrorPolicy.FAIL_CLOSED:
                issues.append(QualityIssue.BLURRY_FACE)
                failure_reason = FAILED_TO_PROCESS_IMAGE
            return QualityResult.from_issues(tuple(issues), failure_reason=failure_reason)

        if not self.strategy.is_sharp(report.score):
            issues.append(QualityIssue.BLURRY_FACE)
            failure_reason = QualityIssue.BLURRY_FACE.message
        return QualityResult.from_issues(tuple(issues), failure_reason=failure_reason, sharpness=report)

    def assess(self, image: Image.Image, geometry: Optional[FaceGeometry] = None) -> QualityResult:
        """
        Assess one face.

        With `geometry` the image is the full source frame and the face is
        cropped from it; without it the image is taken to be an already
        cropped face and only sharpness is checked. Malformed images raise
        InvalidDimensions. A failed sharpness computation is resolved by the
        error policy; geometry issues are always kept.
        """
        if image.width <= 0 or image.height <= 0:
            raise InvalidDimensions(image.width, image.height)
        result = self._evaluate(image, geometry)
        log.debug(
            "Face quality assessed",
            extra={
                "good": result.is_good_quality,
                "score": round(result.quality_score, 3),
                "issues": ",".join(issue.value for issue in result.issues),
            },
        )
        return result

    def assess_detections(self, image: Image.Image, faces: Sequence[FaceGeometry]) -> QualityResult:
        face = largest_face(faces)
        if face is None:
            return no_face_result()
        return self.assess(image, face)

    def assess_many(
        self,
        items: Iterable[Tuple[Image.Image, Optional[FaceGeometry]]],
        max_workers: Optional[int] = None,
    ) -> List[QualityResult]:
        """Assess independent images on a thread pool, keeping input order."""
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(lambda item: self.assess(*item), items))
