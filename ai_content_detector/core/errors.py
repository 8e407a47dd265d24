"""
Error taxonomy for content detection.

Every failure the service can report is a DetectionError subclass carrying
a stable ``code`` tag, a ``retryable`` flag, and a ``user_message``. The
top-level request handler turns these into responses; callers that need to
branch (retry vs give up) can inspect the tag instead of parsing strings.
"""


class DetectionError(Exception):
    """Base class for all detection failures."""

    code = "detection_error"
    retryable = False
    user_message = "Something went wrong while analyzing the content."

    def __init__(self, message: str = "", *, user_message: str | None = None) -> None:
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message

    def to_dict(self) -> dict:
        return {
            "detail": self.user_message,
            "code": self.code,
            "retryable": self.retryable,
        }


class ConfigurationError(DetectionError):
    """Required configuration (the model credential) is missing."""

    code = "configuration_error"
    user_message = "The service is not configured correctly."


class InputValidationError(DetectionError):
    """The submitted input was empty or of the wrong type."""

    code = "invalid_input"
    user_message = "The submitted content could not be accepted."

    def __init__(self, message: str) -> None:
        # validation messages are written for the user already
        super().__init__(message, user_message=message)


class AnalysisInProgressError(DetectionError):
    """Another analysis is still outstanding on this detector."""

    code = "analysis_in_progress"
    retryable = True
    user_message = "An analysis is already running. Please wait for it to finish."


class VideoExtractionError(DetectionError):
    """Parent of the two video decode failures."""

    code = "video_extraction_error"
    user_message = "Frames could not be extracted from the video."


class SourceUnreadable(VideoExtractionError):
    """Video metadata could not be loaded."""

    code = "source_unreadable"


class FrameExtractionFailed(VideoExtractionError):
    """A seek or capture failed partway through sampling."""

    code = "frame_extraction_failed"


class UpstreamRequestError(DetectionError):
    """The model API call itself failed (network, quota, provider)."""

    code = "upstream_error"
    retryable = True
    user_message = "The AI model could not analyze the content. Please try again."


class MalformedResponseError(DetectionError):
    """The model replied, but not with a usable verdict."""

    code = "malformed_response"
    retryable = True
    user_message = "Failed to parse the analysis result from the AI model."
