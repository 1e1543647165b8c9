from __future__ import annotations

import base64
import binascii
import logging
from io import BytesIO
from urllib.error import URLError
from urllib.request import Request, urlopen

from fastapi import FastAPI
from PIL import Image, UnidentifiedImageError

from .assessment import no_face_result
from .config import Settings
from .errors import InvalidDimensions
from .logging_config import setup_logging
from .models import AssessRequest, AssessResponse

VERSION = "0.1.0"

settings = Settings()
setup_logging(getattr(logging, settings.log_level, logging.INFO))
assessor = settings.build_assessor()
app = FastAPI(title="face-quality", version=VERSION)

log = logging.getLogger(__name__)


def _decode_base64_image(payload: str) -> bytes:
    raw = payload
    if "," in payload and payload.strip().startswith("data:image"):
        raw = payload.split(",", 1)[1]
    return base64.b64decode(raw)


def _fetch_url_image(url: str) -> bytes:
    req = Request(url, headers={"User-Agent": "face-quality/1.0"})
    with urlopen(req, timeout=15) as response:
        return response.read()


def _load_image(request: AssessRequest) -> Image.Image:
    data: bytes
    if request.imageBase64:
        data = _decode_base64_image(request.imageBase64)
    elif request.imageUrl:
        data = _fetch_url_image(request.imageUrl)
    else:
        raise ValueError("missing_image_payload")
    return Image.open(BytesIO(data)).convert("RGB")


@app.get("/healthz")
def healthz() -> dict:
    return {
        "ok": True,
        "service": "face-quality",
        "version": VERSION,
        "strategy": assessor.strategy.name,
        "errorPolicy": assessor.error_policy.value,
    }


@app.post("/assess", response_model=AssessResponse)
def assess(request: AssessRequest) -> AssessResponse:
    try:
        image = _load_image(request)
    except (ValueError, URLError, OSError, binascii.Error, UnidentifiedImageError) as exc:
        log.info("Image could not be loaded", extra={"reason": str(exc)})
        return AssessResponse.from_result(no_face_result())

    try:
        if request.faces is None:
            result = assessor.assess(image)
        else:
            faces = [face.to_geometry() for face in request.faces]
            result = assessor.assess_detections(image, faces)
    except InvalidDimensions as exc:
        log.info("Image has invalid dimensions", extra={"reason": str(exc)})
        return AssessResponse.from_result(no_face_result())
    return AssessResponse.from_result(result)
