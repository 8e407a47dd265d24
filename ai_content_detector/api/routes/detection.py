"""
Content detection API endpoints.

One endpoint per input mode:
1. POST /text  - JSON body with the text to judge
2. POST /image - a single uploaded image
3. POST /video - an uploaded video; frames are sampled server-side

Each returns the model's verdict. Failures are raised as DetectionError
subclasses and rendered by the application-level handler in main.py.
"""

import logging
from typing import Annotated, Optional, Union

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel, Field

from ...core.analysis.models import InputMode, Verdict, VideoSource
from ...core.errors import InputValidationError
from ..dependencies import AuthenticatedUser, DetectorDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class TextDetectionRequest(BaseModel):
    """Text submitted for analysis."""
    text: str = Field(description="The text to analyze")


class DetectionResponse(BaseModel):
    """Verdict for one analysis request."""
    mode: str = Field(description="Input mode: text, image, or video")
    determination: str = Field(description="Likely AI-Generated, Likely Human-Generated, or Inconclusive")
    confidence: Union[int, float] = Field(description="Model confidence, nominally 0-100")
    confidence_band: str = Field(description="high (>75), medium (>50), or low")
    rationale: str = Field(description="The model's reasoning, in markdown")
    frames_analyzed: Optional[int] = Field(default=None, description="Frames sent to the model (video only)")

    @classmethod
    def from_verdict(
        cls,
        mode: InputMode,
        verdict: Verdict,
        frames_analyzed: Optional[int] = None,
    ) -> "DetectionResponse":
        return cls(
            mode=mode.value,
            determination=verdict.determination,
            confidence=verdict.confidence,
            confidence_band=verdict.confidence_band,
            rationale=verdict.rationale,
            frames_analyzed=frames_analyzed,
        )


class ErrorResponse(BaseModel):
    """Body returned for any detection failure."""
    detail: str
    code: str
    retryable: bool


_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    409: {"model": ErrorResponse, "description": "Another analysis is in progress"},
    502: {"model": ErrorResponse, "description": "Model request failed or reply was unusable"},
}


async def _read_upload(upload: UploadFile, max_bytes: int) -> bytes:
    # one byte past the limit is enough to know it is too big
    data = await upload.read(max_bytes + 1)
    if not data:
        raise InputValidationError("The uploaded file is empty.")
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds maximum size of {max_bytes // (1024 * 1024)}MB",
        )
    return data


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/text",
    response_model=DetectionResponse,
    summary="Analyze text",
    description="Judge whether a piece of text was likely written by an AI",
    responses=_ERROR_RESPONSES,
)
async def detect_text(
    request: TextDetectionRequest,
    detector: DetectorDep,
    api_key: AuthenticatedUser,
) -> DetectionResponse:
    logger.info("Received text for analysis", extra={"length": len(request.text)})

    verdict = await detector.analyze_text(request.text)
    return DetectionResponse.from_verdict(InputMode.TEXT, verdict)


@router.post(
    "/image",
    response_model=DetectionResponse,
    summary="Analyze an image",
    description="Judge whether an uploaded image was likely AI-generated",
    responses=_ERROR_RESPONSES,
)
async def detect_image(
    file: Annotated[UploadFile, File(description="Image file (JPEG, PNG, GIF, WebP)")],
    detector: DetectorDep,
    settings: SettingsDep,
    api_key: AuthenticatedUser,
) -> DetectionResponse:
    logger.info(
        "Received image for analysis",
        extra={"upload_filename": file.filename, "content_type": file.content_type},
    )

    # type check before reading so bad uploads are rejected cheaply
    if not file.content_type or not file.content_type.startswith("image/"):
        raise InputValidationError("Only image files are supported for analysis.")

    data = await _read_upload(file, settings.max_upload_size_bytes)
    verdict = await detector.analyze_image(data, file.content_type)
    return DetectionResponse.from_verdict(InputMode.IMAGE, verdict)


@router.post(
    "/video",
    response_model=DetectionResponse,
    summary="Analyze a video",
    description="Sample frames from an uploaded video and judge whether it was likely AI-generated",
    responses={**_ERROR_RESPONSES, 422: {"model": ErrorResponse, "description": "Video could not be decoded"}},
)
async def detect_video(
    file: Annotated[UploadFile, File(description="Video file (MP4, MOV, WebM, etc.)")],
    detector: DetectorDep,
    settings: SettingsDep,
    api_key: AuthenticatedUser,
    frame_count: Annotated[Optional[int], Form()] = None,
) -> DetectionResponse:
    logger.info(
        "Received video for analysis",
        extra={
            "upload_filename": file.filename,
            "content_type": file.content_type,
            "frame_count": frame_count,
        },
    )

    if not file.content_type or not file.content_type.startswith("video/"):
        raise InputValidationError("Only video files are supported for analysis.")

    if frame_count is not None and not 1 <= frame_count <= settings.max_frame_count:
        raise InputValidationError(
            f"Frame count must be between 1 and {settings.max_frame_count}."
        )

    data = await _read_upload(file, settings.max_upload_size_bytes)
    video = VideoSource(
        data=data,
        media_type=file.content_type,
        filename=file.filename or "",
    )

    verdict, frames_analyzed = await detector.analyze_video(video, frame_count)
    return DetectionResponse.from_verdict(InputMode.VIDEO, verdict, frames_analyzed)
