from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from .types import BoundingBox, FaceGeometry, Landmark, QualityResult


class BoundingBoxModel(BaseModel):
    left: float
    top: float
    right: float
    bottom: float


class FaceGeometryModel(BaseModel):
    boundingBox: BoundingBoxModel
    headAngleY: float = 0.0
    headAngleZ: float = 0.0
    leftEyeOpenProb: Optional[float] = None
    rightEyeOpenProb: Optional[float] = None
    landmarks: List[Landmark] = Field(default_factory=list)

    def to_geometry(self) -> FaceGeometry:
        box = self.boundingBox
        return FaceGeometry(
            bounding_box=BoundingBox(box.left, box.top, box.right, box.bottom),
            head_angle_y=self.headAngleY,
            head_angle_z=self.headAngleZ,
            left_eye_open_prob=self.leftEyeOpenProb,
            right_eye_open_prob=self.rightEyeOpenProb,
            landmarks=frozenset(self.landmarks),
        )


class AssessRequest(BaseModel):
    imageUrl: Optional[str] = None
    imageBase64: Optional[str] = None
    mimeType: Optional[str] = None
    # None: the image is an already-cropped face. []: the detector found nothing.
    faces: Optional[List[FaceGeometryModel]] = None


class SharpnessMetrics(BaseModel):
    strategy: str
    score: float
    threshold: float
    laplacian: float
    modifiedLaplacian: float
    sobel: float
    exposure: str


class AssessResponse(BaseModel):
    isGoodQuality: bool
    qualityScore: float
    issues: List[str] = Field(default_factory=list)
    failureReason: Optional[str] = None
    sharpness: Optional[SharpnessMetrics] = None

    @classmethod
    def from_result(cls, result: QualityResult) -> "AssessResponse":
        sharpness = None
        if result.sharpness is not None:
            report = result.sharpness
            sharpness = SharpnessMetrics(
                strategy=report.strategy,
                score=report.score,
                threshold=report.threshold,
                laplacian=report.laplacian,
                modifiedLaplacian=report.modified_laplacian,
                sobel=report.sobel,
                exposure=report.exposure.value,
            )
        return cls(
            isGoodQuality=result.is_good_quality,
            qualityScore=result.quality_score,
            issues=[issue.value for issue in result.issues],
            failureReason=result.failure_reason,
            sharpness=sharpness,
        )
