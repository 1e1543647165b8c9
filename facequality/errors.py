from __future__ import annotations


class FaceQualityError(Exception):
    """Base exception for face quality assessment."""


class InvalidDimensions(FaceQualityError):
    """Raised when a pixel buffer or grid has no usable width/height."""

    def __init__(self, width: int, height: int, detail: str = "") -> None:
        message = f"Invalid image dimensions: {width}x{height}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)
        self.width = width
        self.height = height


class DegenerateCrop(FaceQualityError):
    """Raised when a face bounding box cannot produce a non-empty crop."""

    def __init__(self, box: object, reason: str = "empty crop region") -> None:
        super().__init__(f"Cannot crop face {box}: {reason}")
        self.box = box
        self.reason = reason
