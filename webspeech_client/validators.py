"""Input validators.

Pure checks run before any job is submitted. Validators never raise; they
always return a ValidationResult.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from .config import ALLOWED_AUDIO_TYPES, ALLOWED_SUBTITLE_TYPES, SUPPORTED_LANGUAGES
from .errors import ERROR_MESSAGES, ErrorCode

SPEED_MIN = 0.1
SPEED_MAX = 2.0
SPEED_DEFAULT = 1.0

# Latin and CJK punctuation plus whitespace; text made only of these says nothing
_SPECIAL_CHARS_ONLY = re.compile(
    r"^[~`!@#$%^&*()_+=,./;':\[\]{}<>?\\|\"，。？；‘’：“”｛【】｝！·￥、\s-]*$"
)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a single validator."""
    valid: bool
    error: Optional[ErrorCode] = None
    message: Optional[str] = None
    value: Any = None

    @classmethod
    def success(cls, value: Any = None) -> 'ValidationResult':
        return cls(valid=True, value=value)

    @classmethod
    def failure(cls, error: ErrorCode, message: str, value: Any = None) -> 'ValidationResult':
        return cls(valid=False, error=error, message=message, value=value)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def validate_text(text: Optional[str]) -> ValidationResult:
    """Text to synthesize must contain something besides punctuation."""
    if _is_blank(text):
        return ValidationResult.failure(ErrorCode.EMPTY_INPUT, "Text is required")
    if _SPECIAL_CHARS_ONLY.match(str(text)):
        return ValidationResult.failure(
            ErrorCode.NO_MEANINGFUL_CONTENT,
            ERROR_MESSAGES[ErrorCode.NO_MEANINGFUL_CONTENT]
        )
    return ValidationResult.success(text)


def validate_voice(voice: Optional[str]) -> ValidationResult:
    if _is_blank(voice):
        return ValidationResult.failure(ErrorCode.EMPTY_INPUT, "Voice selection is required")
    return ValidationResult.success(voice)


def validate_speed(
    raw: Any,
    minimum: float = SPEED_MIN,
    maximum: float = SPEED_MAX,
    default: float = SPEED_DEFAULT
) -> ValidationResult:
    """
    Parse a speech speed.

    Failures still carry ``value=default`` so callers can carry on with a
    safe speed instead of aborting.

    Args:
        raw: Number or numeric string
        minimum: Lowest accepted speed
        maximum: Highest accepted speed
        default: Fallback speed returned on failure

    Returns:
        ValidationResult whose value is the parsed or fallback speed
    """
    try:
        speed = float(str(raw).strip()) if raw is not None else math.nan
    except ValueError:
        speed = math.nan

    if math.isnan(speed):
        return ValidationResult.failure(
            ErrorCode.NOT_A_NUMBER, ERROR_MESSAGES[ErrorCode.NOT_A_NUMBER], value=default
        )
    if speed < minimum or speed > maximum:
        return ValidationResult.failure(
            ErrorCode.OUT_OF_RANGE,
            f"Speed must be between {minimum} and {maximum}",
            value=default
        )
    return ValidationResult.success(speed)


def validate_uploaded_audio(ref: Optional[str]) -> ValidationResult:
    """Speech-to-speech needs a previously uploaded source file."""
    if _is_blank(ref):
        return ValidationResult.failure(
            ErrorCode.MISSING_PRECONDITION,
            "Audio file is required for speech-to-speech conversion"
        )
    return ValidationResult.success(ref)


def validate_language(
    language: Optional[str],
    supported: Sequence[str] = SUPPORTED_LANGUAGES
) -> ValidationResult:
    if _is_blank(language) or language.strip().lower() not in supported:
        return ValidationResult.failure(
            ErrorCode.UNSUPPORTED_LANGUAGE, ERROR_MESSAGES[ErrorCode.UNSUPPORTED_LANGUAGE]
        )
    return ValidationResult.success(language.strip().lower())


def validate_model(
    model: Optional[str],
    is_running: Optional[Callable[[str], bool]] = None
) -> ValidationResult:
    """The default model is always usable; others must be running."""
    if _is_blank(model) or model == "default":
        return ValidationResult.success("")
    if is_running is not None and not is_running(model):
        return ValidationResult.failure(
            ErrorCode.MODEL_NOT_RUNNING, ERROR_MESSAGES[ErrorCode.MODEL_NOT_RUNNING]
        )
    return ValidationResult.success(model)


def validate_audio_file(
    file_name: Optional[str],
    size: Optional[int] = None,
    allowed_types: Sequence[str] = ALLOWED_AUDIO_TYPES,
    max_bytes: Optional[int] = None
) -> ValidationResult:
    """Check an audio file's extension and size before upload."""
    if _is_blank(file_name):
        return ValidationResult.failure(ErrorCode.EMPTY_INPUT, "No file selected")

    lowered = file_name.lower()
    if not any(lowered.endswith(ext.lower()) for ext in allowed_types):
        return ValidationResult.failure(
            ErrorCode.INVALID_FILE_TYPE,
            f"Invalid file type. Allowed: {', '.join(allowed_types)}"
        )

    if max_bytes is not None and size is not None and size > max_bytes:
        max_mb = round(max_bytes / 1024 / 1024)
        return ValidationResult.failure(
            ErrorCode.FILE_TOO_LARGE, f"File too large. Maximum size: {max_mb}MB"
        )

    return ValidationResult.success(file_name)


def validate_subtitle_file(file_name: Optional[str]) -> ValidationResult:
    """Only SRT subtitles can be loaded as synthesis text."""
    if _is_blank(file_name):
        return ValidationResult.failure(ErrorCode.EMPTY_INPUT, "No file selected")
    if not file_name.lower().endswith(ALLOWED_SUBTITLE_TYPES):
        return ValidationResult.failure(
            ErrorCode.INVALID_FILE_TYPE, "Only SRT subtitle files are allowed"
        )
    return ValidationResult.success(file_name)
