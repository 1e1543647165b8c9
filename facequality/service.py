from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

from PIL import Image

from .assessment import FaceQualityAssessor, largest_face, no_face_result
from .errors import DegenerateCrop
from .imaging import compress_image, crop_face, resize_and_center_crop
from .types import FaceGeometry, QualityResult

log = logging.getLogger(__name__)

RETRY_JPEG_QUALITY = 80


class FaceDetector(Protocol):
    """Face detector collaborator; owned by whoever constructs the service."""

    def detect(self, image: Image.Image) -> List[FaceGeometry]:
        ...

    def close(self) -> None:
        ...


@dataclass(frozen=True)
class FaceExtraction:
    face_image: Optional[Image.Image]
    quality: QualityResult


class FaceQualityService:
    """Detect the largest face in an image and assess it.

    The detector is injected and released by close() (or on leaving a
    `with` block); the service keeps no other state.
    """

    def __init__(self, detector: FaceDetector, assessor: Optional[FaceQualityAssessor] = None) -> None:
        self.detector = detector
        self.assessor = assessor or FaceQualityAssessor()
        self._closed = False

    def __enter__(self) -> "FaceQualityService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if not self._closed:
            self.detector.close()
            self._closed = True

    def detect_faces(self, image: Image.Image) -> List[FaceGeometry]:
        if self._closed:
            raise RuntimeError("FaceQualityService is closed")
        try:
            faces = list(self.detector.detect(image))
        except Exception:
            log.exception("Error detecting faces")
            return []
        log.info("Detected faces", extra={"count": len(faces), "width": image.width, "height": image.height})
        return faces

    def _detect_with_retry(self, image: Image.Image) -> List[FaceGeometry]:
        faces = self.detect_faces(image)
        if not faces:
            log.debug("No face found at original quality, trying with compressed image")
            faces = self.detect_faces(compress_image(image, RETRY_JPEG_QUALITY))
        return faces

    def assess_face_quality(self, image: Image.Image) -> QualityResult:
        return self.assessor.assess_detections(image, self.detect_faces(image))

    def extract_largest_face(self, image: Image.Image) -> FaceExtraction:
        """Crop, normalise (resize 256, center-crop 224) and assess the largest face.

        Without a usable face the whole image is normalised instead.
        """
        face = largest_face(self._detect_with_retry(image))
        if face is None:
            log.debug("No faces detected, using fallback resize and crop")
            return FaceExtraction(resize_and_center_crop(image), no_face_result())

        quality = self.assessor.assess(image, face)
        try:
            cropped = crop_face(image, face.bounding_box, self.assessor.thresholds.crop_margin)
        except DegenerateCrop:
            log.warning("Face crop failed, using fallback center crop", extra={"box": face.bounding_box})
            return FaceExtraction(resize_and_center_crop(image), quality)
        return FaceExtraction(resize_and_center_crop(cropped), quality)
