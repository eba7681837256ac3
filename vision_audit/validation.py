"""
Input Validation

Checks run before any provider is contacted. Failures raise
InvalidInputError and are never retried.
"""

from .errors import InvalidInputError
from .models import AnalysisContext, ScreenshotData


MAX_SCREENSHOT_BYTES = 25 * 1024 * 1024

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"


def is_supported_image(data: bytes) -> bool:
    """Return True for PNG, JPEG and WebP byte signatures"""
    if len(data) < 8:
        return False
    if data[:8] == PNG_SIGNATURE:
        return True
    if data[:3] == JPEG_SIGNATURE:
        return True
    return data[:4] == b"RIFF" and data[8:12] == b"WEBP"


def validate_screenshot(screenshot: ScreenshotData) -> None:
    """
    Reject screenshots a vision model cannot use.

    Raises:
        InvalidInputError: If the image is empty, larger than 25 MiB,
            or not a PNG/JPEG/WebP
    """
    if screenshot is None or not screenshot.data:
        raise InvalidInputError("Invalid screenshot data provided: image is empty")

    size = len(screenshot.data)
    if size > MAX_SCREENSHOT_BYTES:
        raise InvalidInputError(
            f"Screenshot too large: {size / 1024 / 1024:.1f}MB (max: 25MB)"
        )

    if not is_supported_image(screenshot.data):
        raise InvalidInputError("Invalid image format - only PNG, JPEG, WebP allowed")


def validate_context(context: AnalysisContext) -> None:
    if context is None:
        raise InvalidInputError("Analysis context is required")
    if not context.stage.strip() or not context.user_intent.strip():
        raise InvalidInputError("Analysis context must include stage and user_intent")
